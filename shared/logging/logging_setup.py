import logging
import logging.config
import os
from datetime import datetime

from pytz import timezone

debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.DEBUG if debug_mode else logging.INFO

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "ragchat.log"

_ANSI_RESET = "\033[0m"
_ANSI_COLORS = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}
_LEVEL_PREFIXES = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}

# only interesting in debug mode
_NOISY_LOGGERS = ("httpx", "httpcore", "pypdf", "multipart")


class PdfParserFilter(logging.Filter):
    """Drop pypdf warnings about malformed cross-reference tables.

    Broken or scanned PDFs emit hundreds of them before the extractor falls
    back to model transcription.
    """

    def filter(self, record):
        return not (record.name.startswith("pypdf") and record.levelno < logging.ERROR)


class CustomFormatter(logging.Formatter):
    """Timezone-aware timestamps and a level marker in front of warnings and errors.

    With colored=True the whole line is wrapped in the ANSI color passed as
    ``color=`` to the ColorLogger call.
    """

    def __init__(self, tz_name: str, colored: bool = False, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)
        self.colored = colored

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # broken %-args from a third-party logger
            message = str(record.msg)
        record.msg = _LEVEL_PREFIXES.get(record.levelno, "") + message
        record.args = ()
        line = super().format(record)

        ansi = _ANSI_COLORS.get(getattr(record, "color", None) or "") if self.colored else None
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger(logging.LoggerAdapter):
    """Logger accepting an extra ``color=`` keyword, e.g.
    ``logger.info("mode switched", color="magenta")``.

    Only the console handler renders colors; the log file stays plain.
    """

    def process(self, msg, kwargs):
        color = kwargs.pop("color", None)
        if color:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        return msg, kwargs


def _formatter(tz_name: str, colored: bool) -> dict:
    return {
        "()": CustomFormatter,
        "format": LOG_FORMAT,
        "datefmt": DATE_FORMAT,
        "tz_name": tz_name,
        "colored": colored,
    }


def setup_logging() -> ColorLogger:
    """Configure console and file logging and return the application logger.

    The file goes to <ROOT_DIR>/logs/ragchat.log; timestamps use TIMEZONE.
    """
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    tz_name = os.getenv("TIMEZONE", "UTC")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": _formatter(tz_name, colored=False),
            "colored": _formatter(tz_name, colored=True),
        },
        "filters": {
            "pdf_parser": {"()": PdfParserFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "filters": ["pdf_parser"],
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "filters": ["pdf_parser"],
                "level": loglevel,
                "filename": os.path.join(log_dir, LOG_FILE_NAME),
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": loglevel},
    })

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("ragchat"), {})
