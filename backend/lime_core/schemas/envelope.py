"""
Lime Core Backend — Response Envelope Schema
==============================================

What:  The `{status, data, message}` wrapper returned by every API handler.
How:   `ApiResponse[T]` is a generic Pydantic model; FastAPI uses the
       parametrized form (e.g. `ApiResponse[SegmentResponse]`) as the route's
       response_model, which also documents the payload in OpenAPI.

Invariant:
    status == "error"   →  data is None or False (never a partial object)
    status == "success" →  data is the operation's real result. `False` is a
                            valid success payload for deletes of absent records.

Callers must branch on `status`, never on a null-check of `data`.
"""

from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform API envelope. Constructed fresh per request and never mutated."""

    status: Literal["success", "error"] = Field(
        description="Sole success/failure signal for the request"
    )
    data: Optional[T] = Field(default=None, description="Operation result, or null/false on error")
    message: str = Field(description="Human-readable outcome message")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_error_payload(self) -> "ApiResponse[T]":
        """Error envelopes may only carry null or false."""
        if self.status == "error" and self.data not in (None, False):
            raise ValueError("Error envelopes must carry data=null or data=false")
        return self


class HealthResponse(BaseModel):
    """
    What:  Health check document for probes.
    Who:   Returned by GET /health. Not enveloped: load balancers read
           `status` at the top level.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
