"""
Logging for the interview service.

Every log line is a structlog event with a snake_case name
(`turn_processed`, `stage_transition`, `generator_fallback_used`, ...).
`request_id` and `conversation_id` are bound per request so all lines from one
turn can be grouped. Output is JSON unless `DEBUG` is set; each process can also
write its own file under `LOG_DIR`.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.typing import Processor

from belief_chat.core.config import settings

LOG_FILE_PREFIX = "belief_chat_"


def _cull_old_logs(logs_dir: Path, keep: int) -> None:
    """Remove process log files beyond the `keep` most recent."""
    log_files = sorted(
        logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    for old_file in log_files[keep:]:
        try:
            os.remove(old_file)
        except OSError:
            pass  # another process may still hold it


def _event_processors() -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]
    if settings.debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return processors


def _process_log_handler(keep: int) -> logging.Handler:
    """File handler for this process, after pruning older process files."""
    logs_dir = settings.log_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    _cull_old_logs(logs_dir, keep=keep - 1)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return logging.FileHandler(
        logs_dir / f"{LOG_FILE_PREFIX}{timestamp}.log", mode="w", encoding="utf-8"
    )


def configure_logging(
    log_sessions_to_keep: Optional[int] = None,
    log_to_file: Optional[bool] = None,
) -> None:
    """Route structlog events through the root logger.

    Safe to call again (tests do); existing root handlers are replaced.

    Args:
        log_sessions_to_keep: Process log files to retain, this one included
            (defaults to settings.log_sessions_to_keep)
        log_to_file: Override for settings.log_to_file
    """
    keep = log_sessions_to_keep or settings.log_sessions_to_keep
    to_file = settings.log_to_file if log_to_file is None else log_to_file

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if to_file:
        handlers.append(_process_log_handler(keep))
    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    structlog.configure(
        processors=_event_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger for a module: `log = get_logger(__name__)`."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach fields such as `conversation_id` to every later event in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop request-scoped fields; the correlation middleware calls this per request."""
    structlog.contextvars.clear_contextvars()
