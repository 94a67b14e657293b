from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
STREAM_HANDLER_NAME = 'waste_portal.stream'
FILE_HANDLER_NAME = 'waste_portal.file'


def _find_handler(logger: logging.Logger, name: str) -> logging.Handler | None:
    return next((h for h in logger.handlers if h.get_name() == name), None)


def setup_logging(settings) -> Path | None:
    """Configure the root logger, plus a rotating file under ``log_dir`` when one is set.

    Returns the log file path, or None when logging only to stderr.
    Calling it again does not add duplicate handlers.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    fmt = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    handlers: list[logging.Handler] = []
    stream = _find_handler(root, STREAM_HANDLER_NAME)
    if stream is None:
        stream = logging.StreamHandler()
        stream.set_name(STREAM_HANDLER_NAME)
        stream.setFormatter(fmt)
        root.addHandler(stream)
    handlers.append(stream)

    log_path = None
    if settings.log_dir:
        log_dir = Path(settings.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / 'waste_portal.log'
        file_handler = _find_handler(root, FILE_HANDLER_NAME)
        if file_handler is None:
            file_handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5_000_000, backupCount=3, encoding='utf-8'
            )
            file_handler.set_name(FILE_HANDLER_NAME)
            file_handler.setFormatter(fmt)
            root.addHandler(file_handler)
        handlers.append(file_handler)

    # uvicorn installs its own handlers; route them through ours instead
    for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access'):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        for handler in handlers:
            if handler not in lg.handlers:
                lg.addHandler(handler)
        lg.propagate = False

    return log_path
