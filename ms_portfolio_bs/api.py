import base64
import re
from typing import Any, Dict

from bson import DBRef, Decimal128, Int64, MaxKey, MinKey, ObjectId, Regex, Timestamp
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ms_portfolio_bs.config import Settings
from ms_portfolio_bs.errors import InvalidObjectIdError, PortfolioServiceError
from ms_portfolio_bs.logging_config import get_logger
from ms_portfolio_bs.repository import PortfolioRepository
from ms_portfolio_bs.schemas import ErrorResponse, PortfolioEnvelope, SeedResponse
from ms_portfolio_bs.seed import load_seed_documents

logger = get_logger(__name__)

router = APIRouter(tags=["portfolio"])

SEED_SUCCESS_MESSAGE = "Data successfully seeded into MongoDB"


def _encode_dbref(ref: DBRef) -> Dict[str, Any]:
    return {"$ref": ref.collection, "$id": encode_document(ref.id)}


# Every BSON type the driver decodes needs a JSON rendering. ObjectIds become
# their hex string, bytes and Binary become base64.
BSON_ENCODERS = {
    ObjectId: str,
    Decimal128: str,
    Int64: int,
    bytes: lambda value: base64.b64encode(value).decode("ascii"),
    Timestamp: lambda ts: {"t": ts.time, "i": ts.inc},
    Regex: lambda regex: {"pattern": regex.pattern, "flags": regex.flags},
    re.Pattern: lambda pattern: {"pattern": pattern.pattern, "flags": pattern.flags},
    DBRef: _encode_dbref,
    MinKey: lambda _: {"$minKey": 1},
    MaxKey: lambda _: {"$maxKey": 1},
}


def encode_document(value: Any) -> Any:
    return jsonable_encoder(value, custom_encoder=BSON_ENCODERS)


def get_repository(request: Request) -> PortfolioRepository:
    """Shared repository created by the application lifespan."""
    return request.app.state.repository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def parse_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise InvalidObjectIdError(str(e)) from e


def error_response(error: PortfolioServiceError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content={"error": str(error)})


@router.get(
    "/portfolios/{id}",
    response_model=PortfolioEnvelope,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Malformed portfolio ID"},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Store error or portfolio not found"},
    },
    summary="Get portfolio by ID",
    description="get portfolio by ID",
)
async def get_portfolio_by_id(id: str, repository: PortfolioRepository = Depends(get_repository)):
    logger.info("Get portfolio by ID requested", operation="get_portfolio", portfolio_id=id)
    try:
        portfolio_id = parse_object_id(id)
        portfolio = await repository.find_by_id(portfolio_id)
        content = encode_document({"msg": "OK", "data": portfolio})
    except PortfolioServiceError as e:
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            "Get portfolio by ID failed",
            operation="get_portfolio",
            portfolio_id=id,
            error_type=type(e).__name__,
            error=str(e)
        )
        return error_response(e)
    except Exception as e:
        logger.error(
            "Error getting portfolio by ID",
            exc_info=True,
            operation="get_portfolio",
            portfolio_id=id,
            error_type=type(e).__name__,
            error=str(e)
        )
        return error_response(PortfolioServiceError(str(e)))

    logger.info("Successfully returned portfolio", operation="get_portfolio", portfolio_id=id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=content)


@router.post(
    "/portfolios/seed",
    response_model=SeedResponse,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Seed file or store error"},
    },
    summary="Seed data into MongoDB",
    description="Seed data into MongoDB",
)
async def seed_data(
    repository: PortfolioRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
):
    logger.info("Seed requested", operation="seed", seed_file=settings.seed_file)
    try:
        documents = await run_in_threadpool(load_seed_documents, settings.seed_file)
        inserted_ids = await repository.insert_many(documents)
    except PortfolioServiceError as e:
        logger.error(
            "Seeding failed",
            operation="seed",
            seed_file=settings.seed_file,
            error_type=type(e).__name__,
            error=str(e)
        )
        return error_response(e)
    except Exception as e:
        logger.error(
            "Unexpected error while seeding",
            exc_info=True,
            operation="seed",
            seed_file=settings.seed_file,
            error_type=type(e).__name__,
            error=str(e)
        )
        return error_response(PortfolioServiceError(str(e)))

    logger.info("Seed completed", operation="seed", count=len(inserted_ids))
    return SeedResponse(message=SEED_SUCCESS_MESSAGE)
