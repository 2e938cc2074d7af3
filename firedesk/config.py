# ============================================================================
# FIREDESK - Coordinator Configuration
# ============================================================================
# Environment-driven settings. Every key can be overridden with a FIREDESK_*
# variable; tests patch CONFIG directly.
# ============================================================================

import os
from typing import Any, Dict

# key: (default, type, env var)
DEFAULT_CONFIG = {
    "db_path": ("firedesk.db", "string", "FIREDESK_DB_PATH"),
    "db_timeout_seconds": (30, "int", "FIREDESK_DB_TIMEOUT"),
    "log_level": ("INFO", "string", "FIREDESK_LOG_LEVEL"),
    "event_stream_enabled": (True, "bool", "FIREDESK_EVENT_STREAM"),
}


def _cast_value(value: str, value_type: str, default: Any = None) -> Any:
    """Cast an environment string to the declared type; unparseable ints keep the default."""
    if value_type == "bool":
        return value.strip().lower() in ("true", "1", "yes", "on")
    if value_type == "int":
        try:
            return int(value)
        except ValueError:
            return default
    return value


def load_config() -> Dict[str, Any]:
    """Build the config dict from defaults and the environment."""
    cfg = {}
    for key, (default, value_type, env_var) in DEFAULT_CONFIG.items():
        raw = os.getenv(env_var)
        cfg[key] = default if raw is None else _cast_value(raw, value_type, default)
    return cfg


CONFIG: Dict[str, Any] = load_config()


def get_config(key: str, default: Any = None) -> Any:
    return CONFIG.get(key, default)
