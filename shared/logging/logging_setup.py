"""Logging for the ingestion bridge: colored console, plain log file, local timestamps."""

from datetime import datetime
import logging
import logging.config
import os

from pytz import timezone

LOGGER_NAME = "ingest_bridge"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ANSI_RESET = "\033[0m"
ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}


def _level_marker(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "⛔ "
    if levelno >= logging.WARNING:
        return "⚠️ "
    return ""


def resolve_level() -> int:
    """Map LOG_LEVEL (debug, info, warning, ...) to a logging level, INFO if unknown."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "info").strip().upper())
    return level if isinstance(level, int) else logging.INFO


class TimezoneFormatter(logging.Formatter):
    """Formats timestamps in a fixed timezone and prefixes warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        moment = datetime.fromtimestamp(record.created, self.tz)
        return moment.strftime(datefmt) if datefmt else moment.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # arguments do not fit the template
            message = f"{record.msg} {record.args!r}"

        # every handler formats the same record, so work on a copy
        marked = logging.makeLogRecord(record.__dict__)
        marked.msg = _level_marker(record.levelno) + message
        marked.args = ()
        return super().format(marked)


class ConsoleFormatter(TimezoneFormatter):
    """Adds the ANSI color requested through ``ColorLogger(..., color=...)``."""

    def format(self, record):
        line = super().format(record)
        ansi = ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{ANSI_RESET}" if ansi else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts ``color=<name>`` on every log call.

    The color only reaches the console handler; the log file stays plain.
    Everything else (setLevel, handlers, ...) is passed through to the logger.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        # point %(funcName)s and friends at the caller, not at this wrapper
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._log(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def build_logging_config(log_file: str, tz_name: str, level: int) -> dict:
    """Build the dictConfig for a console handler and a file handler on the root logger."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "()": TimezoneFormatter,
                "format": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
                "tz_name": tz_name,
            },
            "console": {
                "()": ConsoleFormatter,
                "format": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
                "tz_name": tz_name,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "plain",
                "level": level,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": level,
        },
    }


def setup_logging() -> ColorLogger:
    """Configure logging from LOG_LEVEL, TIMEZONE and ROOT_DIR and return the app logger.

    The log file is written to ``$ROOT_DIR/logs/app.log`` (ROOT_DIR defaults to the
    working directory). httpx request lines are only shown at debug level.
    """
    level = resolve_level()
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(
        build_logging_config(
            log_file=os.path.join(log_dir, "app.log"),
            tz_name=os.getenv("TIMEZONE", "Europe/Berlin"),
            level=level,
        )
    )
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
