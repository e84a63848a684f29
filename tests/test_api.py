import httpx
import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from src.crud import CreateData, ReadData
from src.main import create_app
from src.services.container import build_services
from tests.conftest import ADMIN_STEAM_ID, add_case, add_giveaway

PLAYER = {"X-Steam-Id": "76561190000000500", "X-Display-Name": "player", "X-Avatar": "https://avatars.test/p.png"}
ADMIN = {"X-Steam-Id": ADMIN_STEAM_ID, "X-Display-Name": "admin"}


@pytest.fixture
def services(engine, config, source):
    services = build_services(config, engine=engine, source=source)
    services.ledger.rand = lambda: 0.0
    services.ledger.rand_int = lambda lo, hi: lo
    return services


@pytest_asyncio.fixture
async def client(services):
    app = create_app(services)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://casebros.test") as client:
        yield client
    await services.resolver.drain()


async def test_healthz(client):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


async def test_me_creates_user_once(client):
    r = await client.get("/api/me")
    assert r.json() == {"user": None}

    r = await client.get("/api/me", headers=PLAYER)
    user = r.json()["user"]
    assert user["gems_cents"] == 50_000
    assert user["display_name"] == "player"
    assert user["is_admin"] is False

    renamed = {**PLAYER, "X-Display-Name": "renamed"}
    user_again = (await client.get("/api/me", headers=renamed)).json()["user"]
    assert user_again["user_id"] == user["user_id"]
    assert user_again["display_name"] == "renamed"
    assert user_again["gems_cents"] == 50_000

    admin = (await client.get("/api/me", headers=ADMIN)).json()["user"]
    assert admin["is_admin"] is True


async def test_signed_in_routes_require_identity(client):
    r = await client.post("/api/open", json={"case_slug": "starter-case"})
    assert r.status_code == 401
    assert r.json() == {"error": "UNAUTHENTICATED"}
    assert (await client.get("/api/inventory")).status_code == 401
    assert (await client.post("/api/streak/claim")).status_code == 401


async def test_cases_listing(client, services):
    await add_case(services.session_factory, case_price_cents=250, key_price_cents=550)
    await add_case(services.session_factory, slug="retired", active=False)

    cases = (await client.get("/api/cases")).json()["cases"]
    assert [case["slug"] for case in cases] == ["starter-case"]

    detail = (await client.get("/api/cases/starter-case")).json()
    assert detail["case"]["key_price_cents"] == 550
    assert detail["items"][0]["item"]["market_hash_base"] == "AK-47 | Redline"
    assert detail["items"][0]["weight"] == 1.0

    r = await client.get("/api/cases/retired")
    assert r.status_code == 404
    assert r.json()["error"] == "CASE_NOT_FOUND"


async def test_open_and_sell(client, services, source):
    await add_case(services.session_factory, case_price_cents=250, key_price_cents=550)
    source.default = 1234

    r = await client.post("/api/open", json={"case_slug": "starter-case"}, headers=PLAYER)
    assert r.status_code == 200
    opened = r.json()
    assert opened["balance_cents"] == 49_200
    assert opened["drop"]["price_display"] == "12.34"

    items = (await client.get("/api/inventory", headers=PLAYER)).json()["items"]
    assert [item["inventory_id"] for item in items] == [opened["drop"]["inventory_id"]]
    assert items[0]["item"]["name"] == "Redline"

    other = {"X-Steam-Id": "76561190000000501"}
    r = await client.post(f"/api/inventory/{opened['drop']['inventory_id']}/sell", headers=other)
    assert r.status_code == 403
    assert r.json()["error"] == "NOT_YOURS"

    r = await client.post(f"/api/inventory/{opened['drop']['inventory_id']}/sell", headers=PLAYER)
    assert r.json() == {"ok": True, "credit_cents": 1234, "balance_cents": 49_200 + 1234}

    leaderboard = (await client.get("/api/leaderboard")).json()["leaderboard"]
    assert leaderboard[0]["gems_cents"] == 50_434


async def test_open_errors(client, services):
    await add_case(services.session_factory, slug="pricey", case_price_cents=60_000)

    r = await client.post("/api/open", json={"case_slug": "nope"}, headers=PLAYER)
    assert (r.status_code, r.json()["error"]) == (404, "CASE_NOT_FOUND")

    r = await client.post("/api/open", json={"case_slug": "pricey"}, headers=PLAYER)
    assert r.status_code == 400
    assert r.json() == {"error": "NOT_ENOUGH_GEMS", "balance_cents": 50_000, "cost_cents": 60_500}

    r = await client.post("/api/open", json={"case_slug": ""}, headers=PLAYER)
    assert r.status_code == 422


async def test_streak_claim(client):
    r = await client.post("/api/streak/claim", headers=PLAYER)
    assert r.status_code == 200
    assert r.json()["reward_cents"] == 750
    assert r.json()["balance_cents"] == 50_750

    r = await client.post("/api/streak/claim", headers=PLAYER)
    assert (r.status_code, r.json()) == (400, {"error": "ALREADY_CLAIMED_TODAY"})


async def test_giveaway_flow(client, services):
    giveaway = await add_giveaway(services.session_factory)
    path = f"/api/giveaways/{giveaway.giveaway_id}"

    listed = (await client.get("/api/giveaways")).json()["giveaways"]
    assert [g["giveaway_id"] for g in listed] == [str(giveaway.giveaway_id)]

    r = await client.post(f"{path}/enter", json={"entries": 0}, headers=PLAYER)
    assert (r.status_code, r.json()["error"]) == (400, "BAD_ENTRIES")

    r = await client.post(f"{path}/enter", json={"entries": 4}, headers=PLAYER)
    assert r.json()["my_entries"] == 4
    assert r.json()["balance_cents"] == 46_000

    detail = (await client.get(path, headers=PLAYER)).json()
    assert (detail["total_entries"], detail["my_entries"]) == (4, 4)
    anonymous = (await client.get(path)).json()
    assert (anonymous["total_entries"], anonymous["my_entries"]) == (4, 0)

    r = await client.post(f"/api/admin/giveaways/{giveaway.giveaway_id}/pick-winner", headers=PLAYER)
    assert (r.status_code, r.json()["error"]) == (403, "FORBIDDEN")

    r = await client.post(f"/api/admin/giveaways/{giveaway.giveaway_id}/pick-winner", headers=ADMIN)
    assert r.status_code == 200
    settled = r.json()
    assert settled["winner"]["display_name"] == "player"
    assert settled["replaced_previous_winner"] is False

    winners = (await client.get("/api/winners")).json()["winners"]
    assert [w["giveaway_id"] for w in winners] == [str(giveaway.giveaway_id)]
    assert winners[0]["title"] == "Weekly Giveaway"

    r = await client.post(f"{path}/enter", json={"entries": 1}, headers=PLAYER)
    assert (r.status_code, r.json()["error"]) == (400, "GIVEAWAY_ENDED")


async def test_pick_winner_without_entries(client, services):
    giveaway = await add_giveaway(services.session_factory)
    r = await client.post(f"/api/admin/giveaways/{giveaway.giveaway_id}/pick-winner", headers=ADMIN)
    assert (r.status_code, r.json()) == (400, {"error": "NO_ENTRIES"})

    r = await client.get(f"/api/giveaways/{giveaway.giveaway_id}")
    assert r.json()["giveaway"]["status"] == "active"


async def test_admin_market_refresh(client):
    r = await client.post("/api/admin/market/refresh", headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"selected": 0, "succeeded": 0, "failed": 0}

    r = await client.post("/api/admin/market/refresh", headers=PLAYER)
    assert r.status_code == 403


async def test_store_outage_on_reads_is_503(client, services, monkeypatch):
    await add_case(services.session_factory)

    async def unreachable(*args, **kwargs):
        raise OperationalError("SELECT", {}, ConnectionRefusedError("database is down"))

    monkeypatch.setattr(ReadData, "read_active_cases", unreachable)
    r = await client.get("/api/cases")
    assert (r.status_code, r.json()["error"]) == (503, "STORE_UNAVAILABLE")

    monkeypatch.setattr(ReadData, "read_case_by_slug", unreachable)
    r = await client.post("/api/open", json={"case_slug": "starter-case"}, headers=PLAYER)
    assert (r.status_code, r.json()["error"]) == (503, "STORE_UNAVAILABLE")


async def test_reads_do_not_rewrite_an_unchanged_profile(client, services, monkeypatch):
    giveaway = await add_giveaway(services.session_factory)
    upserts = []
    original = CreateData.upsert_user

    async def counting_upsert(steam_id, *args):
        upserts.append(steam_id)
        await original(steam_id, *args)

    monkeypatch.setattr(CreateData, "upsert_user", counting_upsert)

    await client.get("/api/me", headers=PLAYER)
    await client.get("/api/me", headers=PLAYER)
    await client.get(f"/api/giveaways/{giveaway.giveaway_id}", headers=PLAYER)
    assert upserts == [PLAYER["X-Steam-Id"]]

    await client.get("/api/me", headers={**PLAYER, "X-Avatar": "https://avatars.test/new.png"})
    assert len(upserts) == 2
