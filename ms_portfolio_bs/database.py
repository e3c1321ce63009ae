from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from ms_portfolio_bs.errors import ConfigurationError, StoreConnectionError
from ms_portfolio_bs.logging_config import get_logger

logger = get_logger(__name__)


def create_client(mongodb_uri: str, server_selection_timeout_ms: int = 5000) -> AsyncIOMotorClient:
    """
    Create a MongoDB client pinned to Stable API version 1.

    The client connects lazily; call ``ping`` to verify the server is reachable.
    """
    if not mongodb_uri:
        raise ConfigurationError("MONGO_URI is not set")

    return AsyncIOMotorClient(
        mongodb_uri,
        server_api=ServerApi("1"),
        serverSelectionTimeoutMS=server_selection_timeout_ms,
    )


async def ping(client: AsyncIOMotorClient) -> None:
    """Raise StoreConnectionError unless the server answers a ping."""
    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        raise StoreConnectionError(str(e)) from e


async def connect_to_mongodb(mongodb_uri: str, server_selection_timeout_ms: int = 5000) -> AsyncIOMotorClient:
    """
    Open a client and verify liveness. No retries: a failure here is fatal at startup.

    Raises:
        ConfigurationError: the URI is empty
        StoreConnectionError: the client could not be created or the ping failed
    """
    try:
        client = create_client(mongodb_uri, server_selection_timeout_ms)
    except PyMongoError as e:
        # Malformed URIs are rejected by the driver at construction time
        raise StoreConnectionError(str(e)) from e

    try:
        await ping(client)
    except StoreConnectionError:
        client.close()
        raise

    logger.info("Connected to MongoDB", operation="connect")
    return client


def close_client(client: Optional[AsyncIOMotorClient]) -> None:
    if client is not None:
        client.close()
        logger.info("MongoDB client closed", operation="disconnect")
