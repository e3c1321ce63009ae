from pydantic import BaseModel, Field
from typing import Any, Dict


class StatusResponse(BaseModel):
    message: str = Field(..., examples=["OK"])


class PortfolioEnvelope(BaseModel):
    msg: str = Field(..., examples=["OK"])
    data: Dict[str, Any] = Field(..., description="The stored portfolio document, passed through as is")


class SeedResponse(BaseModel):
    message: str = Field(..., examples=["Data successfully seeded into MongoDB"])


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Underlying error message")
