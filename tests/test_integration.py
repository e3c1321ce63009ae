"""
End-to-end tests against a real MongoDB started with testcontainers.
"""

import json

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import AsyncClient, ASGITransport

from ms_portfolio_bs.config import Settings
from ms_portfolio_bs.database import close_client, connect_to_mongodb
from ms_portfolio_bs.main import create_app
from ms_portfolio_bs.repository import PortfolioRepository

pytestmark = pytest.mark.integration

BASE = "/ms-portfolio-bs/v1"
HEX_ID = "507f1f77bcf86cd799439011"


@pytest_asyncio.fixture
async def live_app(mongodb_container, tmp_path):
    settings = Settings(
        _env_file=None,
        mongo_uri=mongodb_container.get_connection_url(),
        seed_file=str(tmp_path / "client_portfolio.json"),
    )
    client = await connect_to_mongodb(settings.mongo_uri)
    collection = client[settings.mongo_db][settings.mongo_collection]
    await collection.delete_many({})

    app = create_app(settings)
    app.state.repository = PortfolioRepository(collection)
    try:
        yield app, collection
    finally:
        await collection.delete_many({})
        close_client(client)


@pytest_asyncio.fixture
async def http(live_app):
    app, _ = live_app
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def write_seed(app, documents):
    with open(app.state.settings.seed_file, "w", encoding="utf-8") as f:
        json.dump(documents, f)


@pytest.mark.asyncio
async def test_seed_then_fetch(live_app, http):
    app, collection = live_app
    write_seed(app, [
        {"_id": {"$oid": HEX_ID}, "createdDate": {"$date": "2021-01-01T00:00:00Z"}, "name": "A"},
    ])

    resp = await http.post(f"{BASE}/portfolios/seed")
    assert resp.status_code == 200

    stored = await collection.find_one({"_id": ObjectId(HEX_ID)})
    assert stored["createdDate"] == "2021-01-01T00:00:00Z"

    resp = await http.get(f"{BASE}/portfolios/{HEX_ID}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["msg"] == "OK"
    assert body["data"] == {"_id": HEX_ID, "createdDate": "2021-01-01T00:00:00Z", "name": "A"}


@pytest.mark.asyncio
async def test_absent_id_is_server_error(http):
    resp = await http.get(f"{BASE}/portfolios/{ObjectId()}")

    assert resp.status_code == 500
    assert resp.json() == {"error": "mongo: no documents in result"}


@pytest.mark.asyncio
async def test_invalid_oid_inserts_nothing(live_app, http):
    app, collection = live_app
    write_seed(app, [
        {"_id": {"$oid": HEX_ID}, "name": "A"},
        {"_id": {"$oid": "xyz"}, "name": "B"},
    ])

    resp = await http.post(f"{BASE}/portfolios/seed")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Invalid ObjectID"}
    assert await collection.count_documents({}) == 0


@pytest.mark.asyncio
async def test_seeding_twice_fails_on_duplicate_key(live_app, http):
    app, collection = live_app
    write_seed(app, [{"_id": {"$oid": HEX_ID}, "name": "A"}])

    first = await http.post(f"{BASE}/portfolios/seed")
    second = await http.post(f"{BASE}/portfolios/seed")

    assert first.status_code == 200
    assert second.status_code == 500
    assert "E11000" in second.json()["error"]
    assert await collection.count_documents({}) == 1
