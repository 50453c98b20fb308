from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire and in the persisted document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncResult(CamelModel):
    """Result of a sync operation."""

    success: bool = Field(..., description="True when every category succeeded")
    synced_items: int = Field(0, ge=0, description="Items fetched across categories")
    errors: List[str] = Field(
        default_factory=list, description="One message per failed category"
    )
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def status(self) -> str:
        if not self.errors:
            return "completed"
        if self.synced_items > 0:
            return "completed_with_errors"
        return "failed"


class TokenResponse(BaseModel):
    """Response from a provider token endpoint."""

    access_token: str = Field(..., description="Access token for API calls")
    refresh_token: Optional[str] = Field(
        None, description="Refresh token for token renewal"
    )
    account_id: Optional[str] = Field(
        None, description="Realm ID or shop domain the token is scoped to"
    )
    expires_in: Optional[int] = Field(None, description="Token lifetime in seconds")
    token_type: str = Field(default="bearer", description="Token type")
    scope: Optional[str] = Field(None, description="Granted scopes")
