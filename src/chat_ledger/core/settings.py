import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from chat_ledger.logger import get_logger

logger = get_logger(__name__)


CONFIG_FILENAME = "config.yaml"

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_INTERPRETER_TIMEOUT = 60.0
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_LEDGER_LIMIT = 5

CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "DATA_DIR",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "INTERPRETER_TIMEOUT",
    "TELEGRAM_BOT_TOKEN",
    "OPERATIONS_WEBHOOK_URL",
    "DRY_RUN",
    "HISTORY_LIMIT",
    "LEDGER_LIMIT",
)


@dataclass(frozen=True)
class Settings:
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: str | None = None
    interpreter_timeout: float = DEFAULT_INTERPRETER_TIMEOUT
    telegram_bot_token: str | None = None
    operations_webhook_url: str | None = None
    dry_run: bool = False
    data_dir: str = "."
    log_dir: str | None = None
    config_dir: str | None = None
    log_level: str = "INFO"
    history_limit: int = DEFAULT_HISTORY_LIMIT
    ledger_limit: int = DEFAULT_LEDGER_LIMIT

    @property
    def profiles_dir(self) -> str:
        return os.path.join(self.data_dir, "profiles")


def _resolve_dotenv_path(config_dir: str | None) -> str | None:
    if config_dir:
        candidate = os.path.join(config_dir, ".env")
        if os.path.exists(candidate):
            return candidate
    resolved = find_dotenv(usecwd=True)
    return resolved or None


def _resolve_config_path(config_dir: str | None) -> str:
    if config_dir:
        return os.path.join(config_dir, CONFIG_FILENAME)
    cwd = os.getcwd()
    candidate = os.path.join(cwd, "config", CONFIG_FILENAME)
    if os.path.exists(candidate):
        return candidate
    return os.path.join(cwd, CONFIG_FILENAME)


def _strip_inline_comment(raw_value: str) -> str:
    quote: str | None = None
    for index, char in enumerate(raw_value):
        if char in {'"', "'"}:
            if quote is None:
                quote = char
            elif quote == char:
                quote = None
            continue
        if char == "#" and quote is None:
            return raw_value[:index].rstrip()
    return raw_value


def _unquote_value(raw_value: str) -> str:
    if len(raw_value) >= 2 and raw_value[0] == raw_value[-1] and raw_value[0] in {'"', "'"}:
        return raw_value[1:-1]
    return raw_value


def read_config_file(path: str | None) -> dict[str, str]:
    """Read a flat ``KEY: value`` file. Nested YAML is not supported."""
    if not path or not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            key = key.strip()
            cleaned = _strip_inline_comment(raw_value).strip()
            if not key or not cleaned:
                continue
            value = _unquote_value(cleaned)
            if value:
                values[key] = value
    return values


def load_environment(config_dir: str | None = None) -> str:
    """Populate os.environ from .env and config.yaml without overriding real env vars.

    Returns the config file path that was consulted.
    """
    config_dir = config_dir or os.getenv("CONFIG_DIR")
    dotenv_path = _resolve_dotenv_path(config_dir)
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    config_path = _resolve_config_path(config_dir)
    file_values = read_config_file(config_path)
    for key in CONFIG_KEYS:
        if key not in os.environ and key in file_values:
            os.environ[key] = file_values[key]
    return config_path


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning(
            "[ENV] %s='%s' below minimum %s, using default %s.",
            name,
            raw,
            min_value,
            default,
        )
        return default
    return value


def get_env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("[ENV] %s='%s' below minimum %s, using default %s.", name, raw, min_value, default)
        return default
    return value


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def ensure_dir(path: str | None) -> None:
    if path and path not in {".", "./"}:
        os.makedirs(path, exist_ok=True)


def load_settings(config_dir: str | None = None) -> Settings:
    """Build the process-wide Settings once; callers pass it on explicitly."""
    load_environment(config_dir)

    data_dir = os.getenv("DATA_DIR", ".")
    log_dir = os.getenv("LOG_DIR") or None
    config_dir = config_dir or os.getenv("CONFIG_DIR") or None
    for path in (data_dir, log_dir, config_dir):
        ensure_dir(path)

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        interpreter_timeout=get_env_float(
            "INTERPRETER_TIMEOUT",
            DEFAULT_INTERPRETER_TIMEOUT,
            min_value=1.0,
        ),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
        operations_webhook_url=os.getenv("OPERATIONS_WEBHOOK_URL") or None,
        dry_run=get_env_bool("DRY_RUN"),
        data_dir=data_dir,
        log_dir=log_dir,
        config_dir=config_dir,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        history_limit=get_env_int("HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT, min_value=1),
        ledger_limit=get_env_int("LEDGER_LIMIT", DEFAULT_LEDGER_LIMIT, min_value=1),
    )


_SENSITIVE_MARKERS = ("KEY", "TOKEN", "SECRET", "PASSWORD", "AUTH")


def _mask_value(name: str, value: str) -> str:
    sanitized = value.replace("\r", "\\r").replace("\n", "\\n")
    sensitive = any(marker in name.upper() for marker in _SENSITIVE_MARKERS) or sanitized.startswith("sk-")
    if not sensitive:
        return sanitized
    if len(sanitized) <= 4:
        return "****"
    return f"{sanitized[:2]}...{sanitized[-2:]}"


def log_environment(settings: Settings) -> None:
    logger.info("[ENV] Effective configuration (masked where needed).")
    values = {
        "OPENAI_API_KEY": settings.openai_api_key,
        "OPENAI_MODEL": settings.openai_model,
        "OPENAI_BASE_URL": settings.openai_base_url,
        "INTERPRETER_TIMEOUT": settings.interpreter_timeout,
        "TELEGRAM_BOT_TOKEN": settings.telegram_bot_token,
        "OPERATIONS_WEBHOOK_URL": settings.operations_webhook_url,
        "DRY_RUN": settings.dry_run,
        "DATA_DIR": settings.data_dir,
        "LOG_DIR": settings.log_dir,
        "LOG_LEVEL": settings.log_level,
        "HISTORY_LIMIT": settings.history_limit,
        "LEDGER_LIMIT": settings.ledger_limit,
    }
    for key, raw_value in values.items():
        value = "<unset>" if raw_value is None else _mask_value(key, str(raw_value))
        logger.info("[ENV] %s=%s", key, value)
