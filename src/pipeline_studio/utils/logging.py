import structlog
import logging
import inspect
import json
from typing import Any
from pipeline_studio.config import get_settings

# Module-level flag to prevent multiple configuration
_logging_configured = False

_PROJECT_PREFIX = "pipeline_studio."


def _add_module_info(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """
    Custom processor to add a short module name to log records.

    "pipeline_studio.services.connection_service" becomes "services.connection_service".
    """
    logger_name = event_dict.get('logger', 'unknown')

    if logger_name.startswith(_PROJECT_PREFIX):
        module_parts = logger_name.split('.')
        event_dict['module'] = '.'.join(module_parts[-2:])
    else:
        event_dict['module'] = logger_name

    return event_dict


def _drop_secrets(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    """Mask password-like fields that slipped into a log call."""
    for key in list(event_dict.keys()):
        if 'password' in key.lower() or key.lower() in ('secret', 'token'):
            event_dict[key] = '********'
    return event_dict


def _pretty_json_renderer(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    """
    Pretty JSON renderer with 2-space indentation.
    """
    return json.dumps(event_dict, indent=2, ensure_ascii=False, default=str)


def _dev_formatter(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
    """
    Single-line colored formatter for local development (APP__LOG_FORMAT=console).
    """
    timestamp = event_dict.get('timestamp', '')
    level = event_dict.get('level', '').upper()
    module = event_dict.get('module', '')
    event = event_dict.get('event', '')
    trace_id = event_dict.get('trace_id', '')

    colors = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    reset = '\033[0m'

    color = colors.get(level, '')

    main_msg = f"{timestamp} {color}[{level}]{reset} {module}: {event}"

    if trace_id:
        main_msg += f" (trace: {trace_id[:8]})"

    skip_fields = {'timestamp', 'level', 'module', 'event', 'trace_id', 'logger'}
    other_fields = [f"{key}={value}" for key, value in event_dict.items() if key not in skip_fields]

    if other_fields:
        main_msg += f" | {', '.join(other_fields)}"

    return main_msg


def configure_logging() -> None:
    """Configure structured logging for the application."""

    global _logging_configured

    # ---- guard: run only once ----
    if _logging_configured:
        return
    _logging_configured = True

    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.app.log_level.value),
        handlers=[logging.StreamHandler()]
    )

    renderer = _dev_formatter if settings.app.log_format == "console" else _pretty_json_renderer

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,  # Adds 'logger' field with module name
            structlog.stdlib.add_log_level,    # Adds 'level' field
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),  # Adds 'timestamp' field (ISO8601)
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _drop_secrets,
            _add_module_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name, typically __name__ to get the module name

    Usage:
        logger = get_logger(__name__)
        logger.info("Connection tested", connection_id="conn-1", status="connected")
    """
    return structlog.get_logger(name)


def get_module_logger() -> structlog.stdlib.BoundLogger:
    """
    Get a logger for the calling module automatically.

    Falls back to 'unknown' module name if frame inspection fails.
    """
    module_name = 'unknown'
    frame = None

    try:
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            module_name = frame.f_back.f_globals.get('__name__', 'unknown')
    except (AttributeError, RuntimeError):
        # Frame inspection can fail in some environments (e.g., some REPL implementations)
        pass
    finally:
        if frame is not None:
            del frame

    return get_logger(module_name)
