"""Environment record threaded through every context effect."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

DEFAULT_API_PATH = "api/v1"


class Environment(BaseModel):
    """Read-only request configuration for DCS calls.

    Known fields are typed; anything else (``filename``-style extras, a fetched
    ``pr_json``, test flags) is kept as an extra attribute. Instances are frozen:
    use :meth:`extended` or ``extend_config`` to derive a new record.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    server: Optional[str] = None
    owner: Optional[str] = None
    repo: Optional[str] = None
    user_branch: Optional[str] = None
    default_branch: Optional[str] = None
    tokenid: Optional[str] = None
    pr_id: Optional[int] = None
    filename: Optional[str] = None
    description: Optional[str] = None
    api_path: str = DEFAULT_API_PATH
    timeout_seconds: float = 30.0

    @property
    def base_url(self) -> str:
        if not self.server:
            raise ValueError("Environment has no server configured")
        server = self.server.rstrip("/")
        if "://" not in server:
            server = f"https://{server}"
        return server

    def extended(self, **fields: Any) -> "Environment":
        """Return a copy overlaid by ``fields``; ``self`` is left untouched."""
        return self.model_copy(update=fields)
