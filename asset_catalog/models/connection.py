"""Result of the warehouse connection-test action."""

from typing import Any, Optional

from pydantic import Field

from asset_catalog.models.asset import CanonicalModel


class ConnectionTestResult(CanonicalModel):
    """Outcome of probing the warehouse with a trivial query."""

    success: bool
    message: str
    details: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    error_kind: Optional[str] = None
