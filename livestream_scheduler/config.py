"""Run configuration loaded from a KEY=VALUE file and the environment."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError
from .models import ScheduleRequest

LOGGER = logging.getLogger("livestream_scheduler.config")

ENV_PREFIX = "LSS_"
DEFAULT_CONFIG_PATH = Path("scheduler.conf")
DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_CONFLICT_WINDOW = 90
DEFAULT_PAGE_SIZE = 25
DEFAULT_TIMEOUT = 30.0
DEFAULT_CATEGORY_ID = "29"  # Nonprofits & Activism
DEFAULT_PRIMARY_MARKER = "English"
DEFAULT_PRIMARY_DESCRIPTION = (
    "We hope to connect with you! Send us an email.\n"
    "info@cec-sd.org\n\n"
    "For more info, please check out our website.\n"
    "https://cec-sd.org"
)
DEFAULT_ORGANIZATION = "CEC"
DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465
DEFAULT_OAUTH_PORT = 8080
AUTH_MODES = ("auto", "token", "interactive", "service_account")

# label, hour, minute, stream key
DEFAULT_SERVICES: Tuple[Tuple[str, int, int, str], ...] = (
    ("English Sunday Worship", 9, 15, "sanctuary"),
    ("Mandarin Sunday Worship 國語主日崇拜", 9, 15, "fellowship"),
    ("Cantonese Sunday Worship 粵語主日崇拜", 11, 0, "sanctuary"),
)


@dataclass(frozen=True)
class ServiceSpec:
    label: str
    hour: int
    minute: int
    stream_key: str


DEFAULT_SERVICE_SPECS = tuple(ServiceSpec(*entry) for entry in DEFAULT_SERVICES)


@dataclass
class EmailSettings:
    sender: str = ""
    password: str = ""
    recipients: List[str] = field(default_factory=list)
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT

    @property
    def enabled(self) -> bool:
        return bool(self.sender and self.recipients)


@dataclass
class SchedulerConfig:
    """Everything a run needs; loaded once at start-up."""

    channel_id: str
    stream_ids: Dict[str, str] = field(default_factory=dict)
    timezone: str = DEFAULT_TIMEZONE
    conflict_window_minutes: int = DEFAULT_CONFLICT_WINDOW
    page_size: int = DEFAULT_PAGE_SIZE
    request_timeout: float = DEFAULT_TIMEOUT
    category_id: str = DEFAULT_CATEGORY_ID
    primary_marker: str = DEFAULT_PRIMARY_MARKER
    primary_description: str = DEFAULT_PRIMARY_DESCRIPTION
    organization: str = DEFAULT_ORGANIZATION
    auth_mode: str = "auto"
    client_secret_path: Path = Path("credentials.json")
    token_path: Path = Path("token.json")
    service_account_path: Optional[Path] = None
    oauth_port: int = DEFAULT_OAUTH_PORT
    email: EmailSettings = field(default_factory=EmailSettings)
    log_file: Optional[Path] = None
    services: Tuple[ServiceSpec, ...] = DEFAULT_SERVICE_SPECS

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def build_requests(self, only: Optional[str] = None) -> List[ScheduleRequest]:
        """Turn the configured services into schedule requests.

        A service whose stream key has no configured id still produces a
        request; it fails closed when scheduled.
        """

        requests: List[ScheduleRequest] = []
        for service in self.services:
            if only and only.lower() not in service.label.lower():
                continue
            requests.append(
                ScheduleRequest(
                    label=service.label,
                    hour=service.hour,
                    minute=service.minute,
                    stream_id=self.stream_ids.get(service.stream_key, ""),
                )
            )
        return requests

    @staticmethod
    def _parse_config_file(path: Path) -> Dict[str, str]:
        if not path.exists():
            return {}
        values: Dict[str, str] = {}
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Could not read %s: %s", path, exc)
            return values
        for line in raw.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            values[key.strip().upper()] = value.strip().strip('"').strip("'")
        return values

    @staticmethod
    def _parse_positive_int(name: str, value: Optional[str], default: int) -> int:
        if not value:
            return default
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            LOGGER.warning("Invalid value for %s (%r); using %s", name, value, default)
            return default
        if parsed <= 0:
            LOGGER.warning(
                "Non-positive value for %s (%r); using %s", name, value, default
            )
            return default
        return parsed

    @staticmethod
    def _parse_positive_float(name: str, value: Optional[str], default: float) -> float:
        if not value:
            return default
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            LOGGER.warning("Invalid value for %s (%r); using %s", name, value, default)
            return default
        if parsed <= 0:
            LOGGER.warning(
                "Non-positive value for %s (%r); using %s", name, value, default
            )
            return default
        return parsed

    @staticmethod
    def _parse_services(raw: str) -> Tuple[ServiceSpec, ...]:
        """Parse ``label@HH:MM@stream_key`` entries separated by ``;``."""

        services: List[ServiceSpec] = []
        for chunk in raw.split(";"):
            entry = chunk.strip()
            if not entry:
                continue
            parts = [part.strip() for part in entry.split("@")]
            if len(parts) != 3 or ":" not in parts[1]:
                raise ConfigError(f"Invalid SERVICES entry {entry!r}")
            label, clock, stream_key = parts
            hour_raw, minute_raw = clock.split(":", 1)
            try:
                hour, minute = int(hour_raw), int(minute_raw)
            except ValueError as exc:
                raise ConfigError(f"Invalid time in SERVICES entry {entry!r}") from exc
            if not (0 <= hour <= 23 and 0 <= minute <= 59):
                raise ConfigError(f"Time out of range in SERVICES entry {entry!r}")
            services.append(ServiceSpec(label, hour, minute, stream_key.lower()))
        if not services:
            raise ConfigError("SERVICES is set but defines no service")
        return tuple(services)

    @classmethod
    def from_sources(
        cls, path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
    ) -> "SchedulerConfig":
        env = os.environ if env is None else env
        if path is None:
            path = Path(env.get(ENV_PREFIX + "CONFIG") or DEFAULT_CONFIG_PATH)
        data = cls._parse_config_file(Path(path).expanduser())

        def _get(key: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + key)
            if value:
                return value
            return data.get(key)

        channel_id = _get("CHANNEL_ID")
        if not channel_id:
            raise ConfigError(
                f"CHANNEL_ID is not defined in {path} nor in {ENV_PREFIX}CHANNEL_ID"
            )

        stream_ids: Dict[str, str] = {}
        keys = {key for key in data if key.startswith("STREAM_ID_")}
        keys.update(
            name[len(ENV_PREFIX):]
            for name in env
            if name.startswith(ENV_PREFIX + "STREAM_ID_")
        )
        for key in sorted(keys):
            value = _get(key)
            if value:
                stream_ids[key[len("STREAM_ID_"):].lower()] = value

        timezone = _get("TIMEZONE") or DEFAULT_TIMEZONE
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown TIMEZONE {timezone!r}") from exc

        auth_mode = (_get("AUTH_MODE") or "auto").strip().lower()
        if auth_mode not in AUTH_MODES:
            LOGGER.warning("Invalid AUTH_MODE %r; using auto", auth_mode)
            auth_mode = "auto"

        recipients_raw = _get("EMAIL_RECIPIENTS") or ""
        email = EmailSettings(
            sender=_get("EMAIL_SENDER") or "",
            password=_get("EMAIL_PASSWORD") or "",
            recipients=[item.strip() for item in recipients_raw.split(",") if item.strip()],
            smtp_host=_get("SMTP_HOST") or DEFAULT_SMTP_HOST,
            smtp_port=cls._parse_positive_int(
                "SMTP_PORT", _get("SMTP_PORT"), DEFAULT_SMTP_PORT
            ),
        )

        description_raw = _get("PRIMARY_DESCRIPTION")
        primary_description = (
            description_raw.replace("\\n", "\n")
            if description_raw
            else DEFAULT_PRIMARY_DESCRIPTION
        )
        services_raw = _get("SERVICES")
        services: Sequence[ServiceSpec] = (
            cls._parse_services(services_raw)
            if services_raw
            else DEFAULT_SERVICE_SPECS
        )
        service_account_raw = _get("SERVICE_ACCOUNT_PATH")
        log_file_raw = _get("LOG_FILE")

        return cls(
            channel_id=channel_id,
            stream_ids=stream_ids,
            timezone=timezone,
            conflict_window_minutes=cls._parse_positive_int(
                "CONFLICT_WINDOW_MINUTES",
                _get("CONFLICT_WINDOW_MINUTES"),
                DEFAULT_CONFLICT_WINDOW,
            ),
            page_size=cls._parse_positive_int(
                "PAGE_SIZE", _get("PAGE_SIZE"), DEFAULT_PAGE_SIZE
            ),
            request_timeout=cls._parse_positive_float(
                "REQUEST_TIMEOUT", _get("REQUEST_TIMEOUT"), DEFAULT_TIMEOUT
            ),
            category_id=_get("CATEGORY_ID") or DEFAULT_CATEGORY_ID,
            primary_marker=_get("PRIMARY_LANGUAGE_MARKER") or DEFAULT_PRIMARY_MARKER,
            primary_description=primary_description,
            organization=_get("ORGANIZATION") or DEFAULT_ORGANIZATION,
            auth_mode=auth_mode,
            client_secret_path=Path(
                _get("CLIENT_SECRET_PATH") or "credentials.json"
            ).expanduser(),
            token_path=Path(_get("TOKEN_PATH") or "token.json").expanduser(),
            service_account_path=(
                Path(service_account_raw).expanduser() if service_account_raw else None
            ),
            oauth_port=cls._parse_positive_int(
                "OAUTH_PORT", _get("OAUTH_PORT"), DEFAULT_OAUTH_PORT
            ),
            email=email,
            log_file=Path(log_file_raw).expanduser() if log_file_raw else None,
            services=tuple(services),
        )
