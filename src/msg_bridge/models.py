"""Data transfer objects passed between the bridge components.

Defines the HTTP method, the request built from a queue message, the outcome
of dispatching it, and a snapshot of the broker connection pool.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class HttpMethod(str, Enum):
    """Outbound HTTP method; fixed for the process lifetime."""

    GET = "GET"
    POST = "POST"

    @classmethod
    def parse(cls, value: "str | HttpMethod") -> "HttpMethod":
        """Map a configured value to a method.

        Only the exact strings "GET" and "POST" are recognized. Anything else
        falls back to GET instead of failing validation; the fallback is logged.
        """
        if isinstance(value, HttpMethod):
            return value
        match value:
            case "POST":
                return cls.POST
            case "GET":
                return cls.GET
            case _:
                logger.warning("Unrecognized method %r, falling back to GET", value)
                return cls.GET


class RequestDescriptor(BaseModel):
    """A fully resolved request, ready for dispatch."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod = Field(..., description="HTTP method")
    url: str = Field(..., description="Resolved URL (GET) or literal pattern (POST)")
    body: bytes | None = Field(None, description="Raw message bytes for POST, absent for GET")


class DispatchOutcome(BaseModel):
    """Result of one dispatch: a response status or a transport error."""

    method: HttpMethod = Field(..., description="HTTP method used")
    url: str = Field(..., description="URL requested")
    status_code: int | None = Field(None, description="Response status, if a response arrived")
    error: str | None = Field(None, description="Transport error, if no response arrived")
    elapsed_ms: float | None = Field(None, description="Round trip time in milliseconds")

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 300


class PoolStatus(BaseModel):
    """Snapshot of the broker connection pool."""

    max_size: int = Field(..., description="Pool capacity")
    size: int = Field(..., description="Live connections, checked out or idle")
    available: int = Field(..., description="Idle connections ready for reuse")
