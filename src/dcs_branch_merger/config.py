"""Process configuration: .env loading and DCS connection settings."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import dotenv_values, load_dotenv
from pydantic import BaseModel, Field

from .core.environment import DEFAULT_API_PATH, Environment

logger = logging.getLogger(__name__)

TOKEN_VARIABLE = "DCS_TOKEN"

# Values that mean "no token configured"
TOKEN_PLACEHOLDERS = ["", "YOUR_TOKEN_HERE", "REPLACE_ME", "TODO", "CHANGEME"]


def should_override_token(token: Optional[str]) -> bool:
    """Check if a token from the process environment should be replaced."""
    if token is None:
        return True
    return token.strip() in TOKEN_PLACEHOLDERS


def _load_env_file(env_file: Path) -> None:
    token_before = os.getenv(TOKEN_VARIABLE)
    load_dotenv(env_file, override=False)

    if should_override_token(token_before):
        file_token = dotenv_values(env_file).get(TOKEN_VARIABLE)
        if file_token and not should_override_token(file_token):
            os.environ[TOKEN_VARIABLE] = file_token


def load_environment_variables(repository_path: Path | None = None) -> list[str]:
    """Load environment variables from .env files.

    Order of precedence:
    1. Existing process environment (never overridden, except for an empty or
       placeholder DCS_TOKEN)
    2. Project .env file (current working directory)
    3. .env file in ``repository_path``, if given

    Returns:
        The .env files that were loaded.
    """
    loaded_files: list[str] = []

    candidates = [Path.cwd() / ".env"]
    if repository_path:
        candidates.append(Path(repository_path) / ".env")

    for env_file in candidates:
        if not env_file.exists() or str(env_file) in loaded_files:
            continue
        try:
            _load_env_file(env_file)
            loaded_files.append(str(env_file))
            logger.info(f"Loaded environment variables from {env_file}")
        except OSError as e:
            logger.warning(f"Failed to load .env file {env_file}: {e}")

    if not loaded_files:
        logger.debug("No .env files found, using system environment only")

    return loaded_files


class Settings(BaseModel):
    """DCS connection settings shared by every command."""

    server: Optional[str] = None
    token: Optional[str] = None
    api_path: str = DEFAULT_API_PATH
    timeout_seconds: float = Field(default=30.0, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        token = os.getenv(TOKEN_VARIABLE)
        return cls(
            server=os.getenv("DCS_SERVER") or None,
            token=None if should_override_token(token) else token,
            api_path=os.getenv("DCS_API_PATH") or DEFAULT_API_PATH,
            timeout_seconds=float(os.getenv("DCS_TIMEOUT") or 30.0),
        )

    def environment(self, **fields: Any) -> Environment:
        """Build the environment record for one top-level invocation."""
        base = {
            "server": self.server,
            "tokenid": self.token,
            "api_path": self.api_path,
            "timeout_seconds": self.timeout_seconds,
        }
        base.update({key: value for key, value in fields.items() if value is not None})
        return Environment(**base)
