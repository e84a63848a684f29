"""Structured errors raised by the economy engine.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the
transport layer can render it without knowing the business rule behind it.
"""

from typing import Any, Dict, Optional

from src.domain.random_utils import EmptyPopulationError


class EconomyError(Exception):
    code = "ECONOMY_ERROR"
    status_code = 400

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(message or self.code)
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, **self.extra}


class InsufficientFunds(EconomyError):
    code = "NOT_ENOUGH_GEMS"

    def __init__(self, balance_cents: int, cost_cents: int):
        super().__init__(
            f"balance {balance_cents} is below cost {cost_cents}",
            balance_cents=balance_cents,
            cost_cents=cost_cents,
        )
        self.balance_cents = balance_cents
        self.cost_cents = cost_cents


class NotFound(EconomyError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: Any = None):
        super().__init__(f"{resource} not found: {identifier}")
        self.code = f"{resource.upper()}_NOT_FOUND"
        self.resource = resource


class NotOwned(EconomyError):
    code = "NOT_YOURS"
    status_code = 403


class CaseHasNoItems(EconomyError, EmptyPopulationError):
    code = "CASE_HAS_NO_ITEMS"


class NoEntries(EconomyError, EmptyPopulationError):
    code = "NO_ENTRIES"


class AlreadyClaimedToday(EconomyError):
    code = "ALREADY_CLAIMED_TODAY"


class GiveawayEnded(EconomyError):
    code = "GIVEAWAY_ENDED"


class InvalidEntryCount(EconomyError):
    code = "BAD_ENTRIES"


class Unauthenticated(EconomyError):
    code = "UNAUTHENTICATED"
    status_code = 401


class Forbidden(EconomyError):
    code = "FORBIDDEN"
    status_code = 403


class StoreUnavailable(EconomyError):
    """The transaction could not be started or committed. Transient."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


class ExternalPriceUnavailable(Exception):
    """Raised by price sources. Always absorbed by the price resolver."""
