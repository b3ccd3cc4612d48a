"""Logger factory for the import pipeline and CLI.

Every logger gets a stderr console handler (stdout is reserved for command
output) and a dated file handler under the configured log directory.
"""

import logging
import sys
from datetime import date
from pathlib import Path

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOG_DATE_FORMAT = "%H:%M:%S"
_LOGGERS_CACHE: dict[str, logging.Logger] = {}


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Return the named logger, configuring it on first use.

    Later calls with the same name return the cached logger unchanged.

    Args:
        name: Dotted logger name (e.g., 'cinefile.pipeline.orchestrator').
        level: Level number or name; None uses LOG_LEVEL, or DEBUG when DEBUG is set.
        log_dir: Log file directory; None uses LOG_DIR.

    Returns:
        Configured logger.
    """
    cached = _LOGGERS_CACHE.get(name)
    if cached is not None:
        return cached

    numeric_level = _resolve_level(level)
    formatter = logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    logger.addHandler(_create_console_handler(formatter, numeric_level))
    file_handler = _create_file_handler(name, formatter, numeric_level, log_dir)
    if file_handler is not None:
        logger.addHandler(file_handler)

    _LOGGERS_CACHE[name] = logger
    return logger


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        from cinefile.settings import settings

        level = logging.DEBUG if settings.debug else settings.logging.level
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _create_console_handler(formatter: logging.Formatter, level: int) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _create_file_handler(
    name: str,
    formatter: logging.Formatter,
    level: int,
    log_dir: Path | None,
) -> logging.FileHandler | None:
    """Create the dated file handler, or None if the directory is unusable.

    The file is opened on the first record, so idle loggers leave no
    empty files behind.
    """
    try:
        handler = logging.FileHandler(_get_log_file_path(name, log_dir), encoding="utf-8", delay=True)
    except OSError as e:
        print(f"Warning: file logging disabled for {name}: {e}", file=sys.stderr)
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _get_log_file_path(name: str, log_dir: Path | None) -> Path:
    """Build '<dir>/<name_with_underscores>_<YYYYMMDD>.log', creating the directory.

    Args:
        name: Logger name.
        log_dir: Target directory; None resolves LOG_DIR against the project root.

    Returns:
        Log file path.
    """
    directory = log_dir if log_dir is not None else _default_log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    stem = name.replace(".", "_").replace("/", "_")
    return directory / f"{stem}_{date.today():%Y%m%d}.log"


def _default_log_dir() -> Path:
    from cinefile.settings import settings

    configured = Path(settings.logging.log_dir)
    return configured if configured.is_absolute() else settings.paths.project_root / configured
