"""
Configuration for the intake, transit and sheet-logger services.
Resolved once from the environment (optionally a .env file) at process start,
then passed into each app factory. Handlers read it from app.state, never from globals.
"""

import json
import os
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from .env file
# Try loading from parent directory (project root) first
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
if os.path.exists(env_path):
    load_dotenv(env_path)
else:
    # Try current directory
    load_dotenv()

SERVICES = ("contact", "join", "transit", "sheet")
VERSION = "0.1.0"

DEFAULT_MAX_BODY_BYTES = 256_000
DEFAULT_MAX_FIELD_BYTES = 5_000
DEFAULT_RATE_LIMIT = "100 per 15 minutes"
DEFAULT_HONEYPOT_FIELDS = ("hp_text", "hp_check")
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class ConfigError(RuntimeError):
    """Process-level misconfiguration. Raised at startup, never per request."""


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    service: str = "contact"
    environment: str = "development"
    allowed_origins: Tuple[str, ...] = ()
    max_body_bytes: int = Field(DEFAULT_MAX_BODY_BYTES, ge=0)
    max_field_bytes: int = Field(DEFAULT_MAX_FIELD_BYTES, ge=0)
    asset_id: str = "ops-contact-intake"
    version: str = VERSION

    transit_url: Optional[str] = None
    transit_binding: bool = False
    transit_timeout_seconds: float = Field(5.0, gt=0)

    honeypot_fields: Tuple[str, ...] = DEFAULT_HONEYPOT_FIELDS
    rate_limit_enabled: bool = True
    rate_limit_default: str = DEFAULT_RATE_LIMIT

    # Sheet logger
    api_token: str = ""
    service_account_info: Optional[Dict[str, Any]] = None
    sheet_id: str = ""
    sheet_range: str = "A1"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _split_csv(raw: Optional[str]) -> Tuple[str, ...]:
    return tuple(part.strip() for part in (raw or "").split(",") if part.strip())


def _to_int(raw: Optional[str], default: int) -> int:
    """parseInt-style: garbage falls back to the default rather than failing the process."""
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _to_float(raw: Optional[str], default: float) -> float:
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _to_bool(raw: Optional[str], default: bool = False) -> bool:
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def default_asset_id(service: str) -> str:
    if service in ("contact", "join"):
        return f"ops-{service}-intake"
    if service == "transit":
        return "ops-transit-broker"
    return "ops-sheet-logger"


def _service_account_from_env(env: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    """
    Service account credentials, either the full JSON in GOOGLE_APPLICATION_CREDENTIALS
    (same convention as the Firebase deployment) or SA_EMAIL + SA_PRIVATE_KEY.
    """
    raw_json = env.get("GOOGLE_APPLICATION_CREDENTIALS")
    if raw_json:
        try:
            info = json.loads(raw_json)
        except ValueError as e:
            raise ConfigError("GOOGLE_APPLICATION_CREDENTIALS is not valid JSON") from e
        if not isinstance(info, dict):
            raise ConfigError("GOOGLE_APPLICATION_CREDENTIALS must be a JSON object")
        return info
    email = (env.get("SA_EMAIL") or "").strip()
    private_key = env.get("SA_PRIVATE_KEY") or ""
    if not email or not private_key:
        return None
    return {
        "type": "service_account",
        "client_email": email,
        # Keys pasted into dashboards often carry literal "\n" sequences
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": GOOGLE_TOKEN_URI,
    }


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment. Invalid service names are fatal."""
    env = os.environ if environ is None else environ
    service = (env.get("OPS_SERVICE") or "contact").strip().lower()
    if service not in SERVICES:
        raise ConfigError(f"OPS_SERVICE must be one of {', '.join(SERVICES)}; got {service!r}")

    honeypots = env.get("HONEYPOT_FIELDS")
    return Settings(
        service=service,
        environment=(env.get("ENVIRONMENT") or "development").strip().lower(),
        allowed_origins=_split_csv(env.get("ALLOWED_ORIGINS")),
        max_body_bytes=_to_int(env.get("MAX_BODY_BYTES"), DEFAULT_MAX_BODY_BYTES),
        max_field_bytes=_to_int(env.get("MAX_FIELD_BYTES"), DEFAULT_MAX_FIELD_BYTES),
        asset_id=(env.get("ASSET_ID") or "").strip() or default_asset_id(service),
        transit_url=(env.get("TRANSIT_URL") or "").strip() or None,
        transit_binding=_to_bool(env.get("TRANSIT_BINDING")),
        transit_timeout_seconds=_to_float(env.get("TRANSIT_TIMEOUT_SECONDS"), 5.0),
        honeypot_fields=DEFAULT_HONEYPOT_FIELDS if honeypots is None else _split_csv(honeypots),
        rate_limit_enabled=_to_bool(env.get("RATE_LIMIT_ENABLED"), True),
        rate_limit_default=(env.get("RATE_LIMIT_DEFAULT") or DEFAULT_RATE_LIMIT).strip(),
        api_token=(env.get("API_TOKEN") or "").strip(),
        service_account_info=_service_account_from_env(env),
        sheet_id=(env.get("SHEET_ID") or "").strip(),
        sheet_range=(env.get("SHEET_RANGE") or "A1").strip(),
    )


def check_production_settings(settings: Settings) -> None:
    """Fail hard when production would run without the secrets the service needs."""
    if not settings.is_production or settings.service != "sheet":
        return
    missing = []
    if not settings.api_token:
        missing.append("API_TOKEN")
    if not settings.service_account_info:
        missing.append("GOOGLE_APPLICATION_CREDENTIALS or SA_EMAIL/SA_PRIVATE_KEY")
    if not settings.sheet_id:
        missing.append("SHEET_ID")
    if missing:
        raise ConfigError("Sheet logger is missing required settings: " + ", ".join(missing))
