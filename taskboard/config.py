"""Application configuration - single source of truth for all constants.

Contains colors, dimensions, enums (PageType, Route) and the runtime
AppConfig. Import from here instead of hardcoding values elsewhere.
"""
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

# Load .env if available (desktop only - not bundled in mobile builds)
try:
    from dotenv import load_dotenv
    load_dotenv(Path(__file__).parent / ".env")
except ImportError:
    pass  # dotenv not available on mobile, skip loading .env


class PageType(Enum):
    """Enum for page types."""
    LOGIN = "login"
    DASHBOARD = "dashboard"
    ABOUT = "about"


class Route:
    """Route paths understood by the navigation shell."""
    DASHBOARD = "/"
    ABOUT = "/about"


APP_NAME = "Taskboard"
TASKS_COLLECTION = "tasks"
DEFAULT_APP_ID = "default-app-id"
DEFAULT_DB_PATH = "taskboard.db"
DEFAULT_IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"

LOGIN_DELAY_SECONDS = 0.8
IDENTITY_TIMEOUT_SECONDS = 15.0
MUTATION_RETRY_ATTEMPTS = 2
MUTATION_RETRY_BACKOFF_SECONDS = 0.2
TASK_TITLE_MAX_LENGTH = 200

BORDER_RADIUS = 10
BORDER_RADIUS_LG = 20

SNACK_DURATION_MS = 3000
LOGIN_CARD_WIDTH = 360

FONT_SIZE_SM = 10
FONT_SIZE_LG = 14
FONT_SIZE_XL = 16
FONT_SIZE_4XL = 24

ICON_SIZE_2XL = 48
ICON_SIZE_3XL = 64

SPACING_MD = 8
SPACING_LG = 10
SPACING_2XL = 15

PADDING_2XL = 15
PADDING_3XL = 20
PADDING_4XL = 40

OPACITY_DONE = 0.6

COLORS = {
    "bg": "#1e1e1e",
    "sidebar": "#121212",
    "card": "#2d2d2d",
    "accent": "#4a9eff",
    "input_bg": "#252525",
    "border": "#333",
    "danger": "#ff6b6b",
    "done_bg": "#1a1a1a",
    "done_text": "#666666",
    "white": "white",
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_path_part(name: str, default: str) -> str:
    """Read a value used as one segment of a collection path."""
    value = os.getenv(name, "").strip() or default
    if "/" in value:
        raise ValueError(f"{name} must not contain '/': {value!r}")
    return value


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration passed explicitly to the service layer."""
    app_id: str = DEFAULT_APP_ID
    collection: str = TASKS_COLLECTION
    initial_auth_token: Optional[str] = None
    db_path: Path = Path(DEFAULT_DB_PATH)
    identity_api_key: Optional[str] = None
    identity_base_url: str = DEFAULT_IDENTITY_BASE_URL
    login_delay_seconds: float = LOGIN_DELAY_SECONDS
    retry_attempts: int = MUTATION_RETRY_ATTEMPTS
    retry_backoff_seconds: float = MUTATION_RETRY_BACKOFF_SECONDS
    log_level: str = "INFO"

    @property
    def uses_remote_identity(self) -> bool:
        return bool(self.identity_api_key)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a config from TASKBOARD_* environment variables.

        Raises:
            ValueError: If TASKBOARD_APP_ID or TASKBOARD_COLLECTION contains "/"
        """
        return cls(
            app_id=_env_path_part("TASKBOARD_APP_ID", DEFAULT_APP_ID),
            collection=_env_path_part("TASKBOARD_COLLECTION", TASKS_COLLECTION),
            initial_auth_token=os.getenv("TASKBOARD_AUTH_TOKEN") or None,
            db_path=Path(os.getenv("TASKBOARD_DB_PATH", "") or DEFAULT_DB_PATH),
            identity_api_key=os.getenv("TASKBOARD_IDENTITY_API_KEY") or None,
            identity_base_url=(
                os.getenv("TASKBOARD_IDENTITY_BASE_URL", "") or DEFAULT_IDENTITY_BASE_URL
            ),
            login_delay_seconds=_env_float("TASKBOARD_LOGIN_DELAY", LOGIN_DELAY_SECONDS),
            retry_attempts=_env_int("TASKBOARD_RETRY_ATTEMPTS", MUTATION_RETRY_ATTEMPTS),
            retry_backoff_seconds=_env_float(
                "TASKBOARD_RETRY_BACKOFF", MUTATION_RETRY_BACKOFF_SECONDS
            ),
            log_level=(os.getenv("TASKBOARD_LOG_LEVEL", "") or "INFO").upper(),
        )
