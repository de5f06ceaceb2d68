"""Configuration loaded from environment variables."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from platformdirs import user_config_dir

from .errors import ConfigError

logger = logging.getLogger(__name__)


def config_dir() -> Path:
    """Return the slackseek configuration directory.

    Override with SLACKSEEK_CONFIG_DIR env var. Platform defaults:
    - macOS: ~/Library/Application Support/slackseek
    - Linux: ~/.config/slackseek (or $XDG_CONFIG_HOME/slackseek)
    - Windows: %APPDATA%/slackseek
    """
    override = os.environ.get("SLACKSEEK_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(user_config_dir("slackseek", appauthor=False))


def env_file() -> Path:
    """Return the path to the .env configuration file."""
    return config_dir() / ".env"


load_dotenv(env_file())


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}
VALID_TOKEN_PREFIXES = ("xoxp-", "xoxb-")


def _validate_log_level(value: str) -> str:
    level = value.upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid LOG_LEVEL '{value}'. "
            f"Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return level


def parse_channel_ids(raw: str | None) -> list[str]:
    """Split a comma-separated SLACK_CHANNEL_IDS value, dropping blanks."""
    if not raw:
        return []
    return [c.strip() for c in raw.split(",") if c.strip()]


@dataclass(frozen=True)
class Config:
    slack_user_token: str

    # Optional
    team_id: str | None = None
    channel_ids: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __repr__(self) -> str:
        """Mask the token in repr to prevent accidental leakage."""
        def _mask(val: str) -> str:
            if len(val) <= 8:
                return "***"
            return val[:4] + "..." + val[-4:]

        fields = []
        for f in self.__dataclass_fields__:
            val = getattr(self, f)
            if f == "slack_user_token":
                val = _mask(val)
            fields.append(f"{f}={val!r}")
        return f"Config({', '.join(fields)})"

    @classmethod
    def from_env(cls) -> "Config":
        token = os.environ.get("SLACK_USER_TOKEN", "").strip()
        if not token:
            raise ConfigError(
                "SLACK_USER_TOKEN must be set. "
                f"Export it or add it to {env_file()}.",
                missing_vars=["SLACK_USER_TOKEN"],
            )
        if not token.startswith(VALID_TOKEN_PREFIXES):
            raise ConfigError(
                "SLACK_USER_TOKEN must be a Slack user or bot token (xoxp-... or xoxb-...)."
            )

        team_id = os.environ.get("SLACK_TEAM_ID", "").strip()
        log_dir = os.environ.get("LOG_DIR")

        return cls(
            slack_user_token=token,
            team_id=team_id or None,
            channel_ids=parse_channel_ids(os.environ.get("SLACK_CHANNEL_IDS")),
            log_level=_validate_log_level(os.environ.get("LOG_LEVEL", "INFO")),
            log_dir=Path(log_dir) if log_dir else None,
        )
