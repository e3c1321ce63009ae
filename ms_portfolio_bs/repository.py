from typing import Any, Dict, List

from bson import ObjectId
from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from ms_portfolio_bs.errors import PortfolioNotFoundError, StoreOperationError
from ms_portfolio_bs.logging_config import get_logger
from ms_portfolio_bs.tracing import trace_database_call

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "mongo: no documents in result"

# Client-side BSON encode/decode failures are not PyMongoError subclasses
STORE_ERRORS = (PyMongoError, BSONError, OverflowError)


class PortfolioRepository:
    """
    Direct access to the portfolio collection.

    One instance is created at startup and shared by every request; the
    driver owns connection pooling.
    """

    def __init__(self, collection: AsyncIOMotorCollection, trace_enabled: bool = False):
        self._collection = collection
        self._trace_enabled = trace_enabled

    @property
    def collection_name(self) -> str:
        return self._collection.name

    async def _execute(self, operation_name: str, operation, **attributes):
        return await trace_database_call(
            operation_name,
            self._collection.name,
            operation,
            enabled=self._trace_enabled,
            db_name=self._collection.database.name,
            **attributes
        )

    async def find_by_id(self, portfolio_id: ObjectId) -> Dict[str, Any]:
        """Return the document with the given _id. Not-found is raised, not returned."""
        try:
            document = await self._execute(
                "find_by_id",
                lambda: self._collection.find_one({"_id": portfolio_id}),
            )
        except STORE_ERRORS as e:
            raise StoreOperationError(str(e)) from e

        if document is None:
            raise PortfolioNotFoundError(NOT_FOUND_MESSAGE)
        return document

    async def insert_many(self, documents: List[Dict[str, Any]]) -> List[Any]:
        """
        Insert all documents in a single ordered batch.

        Documents written before a failing one stay in the collection.
        """
        if not documents:
            raise StoreOperationError("documents must be a non-empty list")

        try:
            result = await self._execute(
                "insert_many",
                lambda: self._collection.insert_many(documents),
                **{"db.documents.count": len(documents)}
            )
        except STORE_ERRORS as e:
            raise StoreOperationError(str(e)) from e

        logger.info(
            "Inserted portfolio documents",
            operation="insert_many",
            count=len(result.inserted_ids)
        )
        return list(result.inserted_ids)
