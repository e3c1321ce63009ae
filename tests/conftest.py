import os

# Settings are loaded lazily, but anything importing get_settings() needs a URI
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport

from ms_portfolio_bs.config import Settings
from ms_portfolio_bs.main import create_app
from ms_portfolio_bs.repository import PortfolioRepository


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "client_portfolio.json"
    path.write_text("[]", encoding="utf-8")
    return path


@pytest.fixture
def settings(seed_file):
    return Settings(
        _env_file=None,
        mongo_uri="mongodb://localhost:27017",
        seed_file=str(seed_file),
    )


@pytest.fixture
def mock_repository():
    return AsyncMock(spec=PortfolioRepository)


@pytest.fixture
def app(settings, mock_repository):
    """Application with the repository injected directly; the lifespan is not run."""
    application = create_app(settings)
    application.state.repository = mock_repository
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="session")
def mongodb_container():
    """Real MongoDB for integration tests. Skipped when Docker is unavailable."""
    try:
        from testcontainers.mongodb import MongoDbContainer
        container = MongoDbContainer("mongo:8.0.9")
        container.start()
    except Exception as e:
        pytest.skip(f"MongoDB container unavailable: {e}")

    try:
        yield container
    finally:
        container.stop()
