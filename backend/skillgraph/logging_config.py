import logging
import os
from logging.config import dictConfig
from typing import Any, Dict, Mapping, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
TELEMETRY_LOG_FORMAT = "%(asctime)s %(message)s"


def build_logging_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build the dictConfig for the client runtime and the record service.

    ``SKILLGRAPH_LOG_LEVEL`` sets the root level. Telemetry lines get their own
    handler and level (``SKILLGRAPH_TELEMETRY_LOG_LEVEL``) so failover events
    can be kept while the rest of the process is quiet. The HTTP client and the
    SQL engine stay at WARNING unless ``SKILLGRAPH_DEBUG_HTTP`` or
    ``SKILLGRAPH_DATABASE_ECHO`` asks for more.
    """
    env = os.environ if env is None else env
    level = env.get("SKILLGRAPH_LOG_LEVEL", "INFO").upper()
    telemetry_level = env.get("SKILLGRAPH_TELEMETRY_LOG_LEVEL", "INFO").upper()
    debug_http = env.get("SKILLGRAPH_DEBUG_HTTP", "0") == "1"
    echo_sql = env.get("SKILLGRAPH_DATABASE_ECHO", "").lower() in {"1", "true", "yes"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": DEFAULT_LOG_FORMAT},
            "telemetry": {"format": TELEMETRY_LOG_FORMAT},
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "default"},
            "telemetry": {"class": "logging.StreamHandler", "formatter": "telemetry"},
        },
        "loggers": {
            "skillgraph.telemetry": {
                "handlers": ["telemetry"],
                "level": telemetry_level,
                "propagate": False,
            },
            "httpx": {"level": "DEBUG" if debug_http else "WARNING"},
            "httpcore": {"level": "DEBUG" if debug_http else "WARNING"},
            "sqlalchemy.engine": {"level": "INFO" if echo_sql else "WARNING"},
        },
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging() -> None:
    dictConfig(build_logging_config())
    logging.getLogger(__name__).debug("Logging configured")
