"""
Seed file loading and Extended-JSON wrapper normalization.

Seed files are JSON arrays of objects exported from MongoDB, where ``_id``
may appear as ``{"$oid": "<hex>"}`` and ``createdDate`` as
``{"$date": <value>}``. Both wrappers are unwrapped before insertion.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from bson import ObjectId
from bson.errors import InvalidId

from ms_portfolio_bs.errors import SeedDataError
from ms_portfolio_bs.logging_config import get_logger

logger = get_logger(__name__)

INVALID_OBJECT_ID_MESSAGE = "Invalid ObjectID"

ID_FIELD = "_id"
OID_KEY = "$oid"
CREATED_DATE_FIELD = "createdDate"
DATE_KEY = "$date"


def read_seed_file(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read and parse the seed file.

    Raises:
        SeedDataError: the file cannot be read, is not valid JSON, is not a
            JSON array, or holds a non-object element
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SeedDataError(str(e)) from e

    try:
        documents = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SeedDataError(str(e)) from e

    if not isinstance(documents, list):
        raise SeedDataError(
            f"seed file must contain a JSON array, got {type(documents).__name__}"
        )

    for index, document in enumerate(documents):
        if not isinstance(document, dict):
            raise SeedDataError(
                f"seed document {index} must be a JSON object, got {type(document).__name__}"
            )

    return documents


def _unwrap_object_id(value: Any) -> ObjectId:
    if not isinstance(value, str):
        raise SeedDataError(INVALID_OBJECT_ID_MESSAGE)
    try:
        return ObjectId(value)
    except InvalidId as e:
        raise SeedDataError(INVALID_OBJECT_ID_MESSAGE) from e


def normalize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``document`` with its ``_id`` and ``createdDate`` wrappers unwrapped."""
    normalized = dict(document)

    oid = normalized.get(ID_FIELD)
    if isinstance(oid, dict) and oid.get(OID_KEY) is not None:
        normalized[ID_FIELD] = _unwrap_object_id(oid[OID_KEY])

    # The raw $date value is stored as is; no date parsing
    created_date = normalized.get(CREATED_DATE_FIELD)
    if isinstance(created_date, dict) and created_date.get(DATE_KEY) is not None:
        normalized[CREATED_DATE_FIELD] = created_date[DATE_KEY]

    return normalized


def normalize_documents(documents: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Normalize every document, failing on the first invalid ``$oid``.

    Nothing is returned unless every document normalizes, so a bad
    identifier anywhere in the file means nothing gets inserted.
    """
    return [normalize_document(document) for document in documents]


def load_seed_documents(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read, parse and normalize the seed file in one step."""
    documents = normalize_documents(read_seed_file(path))
    logger.debug("Loaded seed documents", path=str(path), count=len(documents))
    return documents
