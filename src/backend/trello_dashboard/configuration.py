"""
Process configuration for the Trello dashboard.
"""

from __future__ import annotations

import os
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

REQUIRED_ENV_VARS = ("TRELLO_API_KEY", "TRELLO_TOKEN", "TRELLO_BOARD_ID", "TEAM_MEMBER_IDS")


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def split_ids(raw: Optional[str]) -> List[str]:
    """Split a comma-separated id list, dropping blanks."""

    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


class DashboardSettings(BaseModel):
    """Configuration for the Trello board dashboard."""

    trello_api_key: str = Field(..., min_length=1)
    """Trello API key"""

    trello_token: str = Field(..., min_length=1)
    """Trello API token paired with the key"""

    trello_board_id: str = Field(..., min_length=1)
    """Board to mirror; also the cache key"""

    team_member_ids: List[str] = Field(..., min_length=1)
    """Tracked roster, in display order"""

    exclude_member_ids: List[str] = Field(default_factory=list)
    """Member ids hidden from workload views even when tracked"""

    cache_ttl_seconds: int = Field(1800, ge=0)
    request_timeout_seconds: float = Field(15.0, gt=0)
    completed_lookback_days: int = Field(30, ge=0)
    serve_stale_on_error: bool = False

    @field_validator("team_member_ids", "exclude_member_ids", mode="before")
    @classmethod
    def _coerce_id_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_ids(value)
        return value

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DashboardSettings":
        """
        Build settings from environment variables.

        Raises ``ConfigurationError`` naming every missing required variable so
        the process refuses to start instead of failing on the first request.
        """

        env = os.environ if env is None else env
        missing = [name for name in REQUIRED_ENV_VARS if not (env.get(name) or "").strip()]
        if not missing and not split_ids(env.get("TEAM_MEMBER_IDS")):
            missing.append("TEAM_MEMBER_IDS")
        if missing:
            raise ConfigurationError(
                f"Missing environment variables: {', '.join(missing)}. See .env.example",
                missing=missing,
            )

        try:
            return cls(
                trello_api_key=env["TRELLO_API_KEY"].strip(),
                trello_token=env["TRELLO_TOKEN"].strip(),
                trello_board_id=env["TRELLO_BOARD_ID"].strip(),
                team_member_ids=split_ids(env["TEAM_MEMBER_IDS"]),
                exclude_member_ids=split_ids(env.get("EXCLUDE_MEMBER_IDS")),
                cache_ttl_seconds=_env_int(env, "DASHBOARD_CACHE_TTL_SECONDS", 1800),
                request_timeout_seconds=_env_float(env, "TRELLO_REQUEST_TIMEOUT_SECONDS", 15.0),
                completed_lookback_days=_env_int(env, "DASHBOARD_COMPLETED_LOOKBACK_DAYS", 30),
                serve_stale_on_error=_env_bool(env, "DASHBOARD_SERVE_STALE_ON_ERROR", False),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid dashboard configuration: {exc}") from exc
