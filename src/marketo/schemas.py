"""
Pydantic models for Marketo REST response envelopes.

Every Marketo REST call answers with the same envelope: a ``success`` flag,
a ``result`` list and, on failure, an ``errors`` list of ``{code, message}``
objects. Per-record results in bulk calls carry a ``status`` and, when
skipped, a ``reasons`` list shaped like ``errors``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MarketoError(BaseModel):
    """One entry of an ``errors`` or ``reasons`` list."""

    model_config = ConfigDict(extra="allow")

    code: str = Field(default="", description="Marketo error code, e.g. '1004'")
    message: str = Field(default="", description="Human readable message")

    @field_validator("code", "message", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Marketo sends codes as strings but some proxies send integers or null."""
        return "" if v is None else str(v)


class MarketoItemResult(BaseModel):
    """Per-record result inside a bulk response.

    Extra fields (``leadId``, ``seq``, ``marketoGUID``...) are kept so callers
    can read whichever id field the operation returns.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Any = None
    status: str = ""
    reasons: list[MarketoError] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("reasons", mode="before")
    @classmethod
    def coerce_reasons(cls, v: Any) -> Any:
        return [] if v is None else v

    def get_field(self, name: str) -> Any:
        """Read a result field by upstream name, extra fields included."""
        if name in ("id", "status", "reasons"):
            return getattr(self, name)
        return (self.model_extra or {}).get(name)


class MarketoResponse(BaseModel):
    """Standard Marketo REST envelope."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    request_id: str | None = Field(default=None, alias="requestId")
    success: bool = False
    result: list[dict[str, Any]] | None = None
    errors: list[MarketoError] = Field(default_factory=list)
    warnings: list[Any] = Field(default_factory=list)
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
    more_result: bool | None = Field(default=None, alias="moreResult")

    @property
    def error_codes(self) -> list[str]:
        return [error.code for error in self.errors]


class TokenResponse(BaseModel):
    """Identity service answer for the client credentials grant."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    scope: str | None = None


__all__ = [
    "MarketoError",
    "MarketoItemResult",
    "MarketoResponse",
    "TokenResponse",
]
