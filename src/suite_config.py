import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from suite_errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TEST_"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_CONFIG_DIR = Path("data/config")
BROWSER_TYPES = ("chromium", "firefox", "webkit")


@dataclass(frozen=True)
class BrowserSettings:
    default_type: str = "chromium"
    headless: bool = True
    timeout: int = 30000
    viewport_width: int = 1920
    viewport_height: int = 1080

    @property
    def viewport(self) -> dict:
        return {"width": self.viewport_width, "height": self.viewport_height}


@dataclass(frozen=True)
class UrlSettings:
    base: str = "https://www.saucedemo.com"
    inventory: str = "https://www.saucedemo.com/inventory.html"


@dataclass(frozen=True)
class UserSettings:
    standard: str = "standard_user"
    locked_out: str = "locked_out_user"
    problem: str = "problem_user"
    performance_glitch: str = "performance_glitch_user"
    error: str = "error_user"
    visual: str = "visual_user"
    default_password: str = "secret_sauce"


@dataclass(frozen=True)
class TimeoutSettings:
    short_wait: int = 5000
    medium_wait: int = 10000
    long_wait: int = 30000
    element_wait: int = 15000


@dataclass(frozen=True)
class PathSettings:
    screenshots: str = "data/screenshots"
    test_data: str = "data/testdata"
    reports: str = "data/reports"


@dataclass(frozen=True)
class ErrorMessages:
    locked_out: str = "Epic sadface: Sorry, this user has been locked out."
    invalid_credentials: str = "Epic sadface: Username and password do not match any user in this service"
    empty_username: str = "Epic sadface: Username is required"
    empty_password: str = "Epic sadface: Password is required"


@dataclass(frozen=True)
class InvalidInputs:
    invalid_username: str = "invalid_user"
    invalid_password: str = "invalid_password"


SECTIONS = {
    "browser": BrowserSettings,
    "urls": UrlSettings,
    "users": UserSettings,
    "timeouts": TimeoutSettings,
    "paths": PathSettings,
    "error_messages": ErrorMessages,
    "test_data": InvalidInputs,
}


@dataclass(frozen=True)
class Settings:
    """Read-only view over the merged configuration sources."""

    environment: str = DEFAULT_ENVIRONMENT
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    urls: UrlSettings = field(default_factory=UrlSettings)
    users: UserSettings = field(default_factory=UserSettings)
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    error_messages: ErrorMessages = field(default_factory=ErrorMessages)
    test_data: InvalidInputs = field(default_factory=InvalidInputs)


def coerce_value(value, default, key: str):
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
        raise ConfigurationError(f"{key}: expected a boolean, got {value!r}")
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ConfigurationError(f"{key}: expected an integer, got {value!r}")
        if isinstance(value, float) and not value.is_integer():
            raise ConfigurationError(f"{key}: expected an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{key}: expected an integer, got {value!r}") from None
    if value is None:
        raise ConfigurationError(f"{key}: value must not be null")
    return str(value)


def read_config_file(path: Path) -> dict:
    if not path.exists():
        logger.debug("Config file not present, skipping: %s", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigurationError(f"Malformed config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def merge_file_values(raw: dict, data: dict, source: Path) -> None:
    for section, values in data.items():
        if section not in SECTIONS:
            logger.warning("Ignoring unknown config section '%s' in %s", section, source)
            continue
        if not isinstance(values, dict):
            raise ConfigurationError(f"Section '{section}' in {source} must be an object")
        known = {f.name for f in fields(SECTIONS[section])}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown config key '%s.%s' in %s", section, key, source)
                continue
            raw.setdefault(section, {})[key] = value


def merge_env_values(raw: dict, environ) -> None:
    for section, cls in SECTIONS.items():
        for f in fields(cls):
            name = f"{ENV_PREFIX}{section.upper()}__{f.name.upper()}"
            if name in environ:
                raw.setdefault(section, {})[f.name] = environ[name]


def load_settings(environment: str | None = None, config_dir: Path | str | None = None, environ=None) -> Settings:
    """Resolve settings from defaults, appsettings.json, the environment file and TEST_* variables.

    Later sources win: environment variables override appsettings.<env>.json,
    which overrides appsettings.json, which overrides the built-in defaults.
    """
    environ = os.environ if environ is None else environ
    environment = (environment or environ.get("TEST_ENVIRONMENT") or DEFAULT_ENVIRONMENT).lower()
    config_dir = Path(config_dir or environ.get("TEST_CONFIG_DIR") or DEFAULT_CONFIG_DIR)

    raw: dict[str, dict] = {}
    for path in (config_dir / "appsettings.json", config_dir / f"appsettings.{environment}.json"):
        merge_file_values(raw, read_config_file(path), path)
    merge_env_values(raw, environ)

    sections = {}
    for section, cls in SECTIONS.items():
        values = raw.get(section, {})
        defaults = cls()
        kwargs = {
            f.name: coerce_value(values[f.name], getattr(defaults, f.name), f"{section}.{f.name}")
            for f in fields(cls)
            if f.name in values
        }
        sections[section] = cls(**kwargs)

    settings = Settings(environment=environment, **sections)
    if settings.browser.default_type.lower() not in BROWSER_TYPES:
        raise ConfigurationError(
            f"browser.default_type must be one of {', '.join(BROWSER_TYPES)}, got '{settings.browser.default_type}'"
        )
    logger.info("Configuration loaded (environment=%s, dir=%s)", environment, config_dir)
    return settings
