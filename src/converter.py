from src.models.dc_models import DropItemModel, DropModel
from src.models.schema_models import WinnerSchema
from src.models.schemas import GiveawayWinner, Inventory, Item


def cents_to_display(cents: int) -> str:
    """Format cents as a two-decimal amount, e.g. 123456 -> "1,234.56"."""
    return f"{int(cents or 0) / 100:,.2f}"


class DataConverter:
    """This class is used to convert stored rows into client models."""

    def convert_inventory_to_drop(self, inventory: Inventory, item: Item, market_hash_name: str) -> DropModel:
        """Convert a freshly dropped inventory row to the DropModel sent to the client

        Args:
            inventory (Inventory): The inserted inventory row
            item (Item): The item that was picked
            market_hash_name (str): Market key used to price the drop

        Returns:
            DropModel: Drop description with the frozen price
        """
        return DropModel(
            inventory_id=inventory.inventory_id,
            created_at=inventory.created_at,
            item=DropItemModel(
                item_id=item.item_id,
                name=item.name,
                weapon=item.weapon,
                rarity=item.rarity,
                is_special=item.is_special,
                image_url=item.image_url,
                market_hash_base=item.market_hash_base,
            ),
            wear=inventory.wear,
            float_value=inventory.float_value,
            pattern_index=inventory.pattern_index,
            market_hash_name=market_hash_name,
            price_cents=inventory.price_cents_at_drop,
            price_display=cents_to_display(inventory.price_cents_at_drop),
        )

    def convert_winner(self, winner: GiveawayWinner) -> WinnerSchema:
        """Flatten a winner row with its user and giveaway

        Args:
            winner (GiveawayWinner): Winner row loaded with user and giveaway

        Returns:
            WinnerSchema: Winner as listed on the winners page
        """
        return WinnerSchema(
            giveaway_id=winner.giveaway_id,
            user_id=winner.user_id,
            display_name=winner.user.display_name,
            avatar=winner.user.avatar,
            title=winner.giveaway.title,
            prize_text=winner.giveaway.prize_text,
            picked_at=winner.picked_at,
        )
