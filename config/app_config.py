"""
Application configuration loader.

Loads defaults from config/defaults.yaml and applies environment variable
overrides on top. The resulting AppConfig is passed to create_app().
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the defaults YAML file
DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"


def load_defaults(path: Path = DEFAULTS_FILE) -> dict[str, Any]:
    """Load the defaults YAML configuration.

    Returns:
        Dict of default settings, empty if the file is missing
    """
    if not path.exists():
        logger.warning(f"Defaults file not found: {path}")
        return {}

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() == "true"


@dataclass
class AppConfig:
    """Settings consumed by the identity client, calendar fetcher and server."""

    client_id: str = ""
    client_secret: str = ""
    authority: str = "https://login.microsoftonline.com/common"
    redirect_uri: str = "http://localhost:3000/auth/redirect"
    scopes: list[str] = field(default_factory=lambda: ["Calendars.Read", "User.Read"])
    response_mode: str = "form_post"
    prompt: Optional[str] = "select_account"

    post_login_redirect_url: str = "/"
    acquire_token_redirect_url: str = "/users/profile"

    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    max_events: int = 50
    calendar_timezone: Optional[str] = None

    database_url: Optional[str] = None
    database_user: Optional[str] = None
    database_password: Optional[str] = None
    encryption_key: Optional[str] = None
    session_secret: Optional[str] = None

    provider_timeout_seconds: float = 30
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False

    @classmethod
    def from_env(cls, defaults: Optional[dict[str, Any]] = None) -> "AppConfig":
        """
        Build the configuration from YAML defaults plus environment variables.

        Args:
            defaults: Pre-loaded defaults dict (loaded from DEFAULTS_FILE if None)
        """
        if defaults is None:
            defaults = load_defaults()

        identity = defaults.get("identity", {})
        sign_in = defaults.get("sign_in", {})
        calendar = defaults.get("calendar", {})
        server = defaults.get("server", {})
        base = cls()

        scopes_env = os.environ.get("MS_SCOPES")
        scopes = scopes_env.split() if scopes_env else identity.get("scopes", base.scopes)

        return cls(
            client_id=os.environ.get("MS_CLIENT_ID", ""),
            client_secret=os.environ.get("MS_CLIENT_SECRET", ""),
            authority=os.environ.get(
                "MS_AUTHORITY", identity.get("authority", base.authority)
            ),
            redirect_uri=os.environ.get(
                "REDIRECT_URI", identity.get("redirect_uri", base.redirect_uri)
            ),
            scopes=list(scopes),
            response_mode=os.environ.get(
                "MS_RESPONSE_MODE", identity.get("response_mode", base.response_mode)
            ),
            prompt=identity.get("prompt", base.prompt),
            post_login_redirect_url=os.environ.get(
                "POST_LOGIN_REDIRECT_URL",
                sign_in.get("post_login_redirect_url", base.post_login_redirect_url),
            ),
            acquire_token_redirect_url=sign_in.get(
                "acquire_token_redirect_url", base.acquire_token_redirect_url
            ),
            graph_base_url=calendar.get("graph_base_url", base.graph_base_url),
            max_events=int(calendar.get("max_events", base.max_events)),
            calendar_timezone=os.environ.get(
                "CALENDAR_TIMEZONE", calendar.get("timezone")
            ),
            database_url=os.environ.get("DATABASE_URL"),
            database_user=os.environ.get("DATABASE_USER"),
            database_password=os.environ.get("DATABASE_PASSWORD"),
            encryption_key=os.environ.get("CREDENTIAL_ENCRYPTION_KEY"),
            session_secret=os.environ.get("SESSION_SECRET"),
            provider_timeout_seconds=float(
                os.environ.get(
                    "PROVIDER_TIMEOUT_SECONDS",
                    defaults.get("provider_timeout_seconds", base.provider_timeout_seconds),
                )
            ),
            host=os.environ.get("HOST", server.get("host", base.host)),
            port=int(os.environ.get("PORT", server.get("port", base.port))),
            debug=_env_bool("DEBUG"),
        )

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when usable)."""
        problems = []
        if not self.client_id:
            problems.append("MS_CLIENT_ID is not set")
        if not self.client_secret:
            problems.append("MS_CLIENT_SECRET is not set")
        if not self.scopes:
            problems.append("No calendar scopes configured")
        return problems
