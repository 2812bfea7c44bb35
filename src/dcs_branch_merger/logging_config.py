import logging
import json
import sys


class StructuredLogFormatter(logging.Formatter):
    """
    Formats log records as JSON lines with DCS request context.
    """

    CONTEXT_FIELDS = ("owner", "repo", "operation", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_record["exception"] = record.exc_text
        return json.dumps(log_record, ensure_ascii=False)


def configure_logging(log_level: str = "WARNING", structured: bool = False) -> None:
    """
    Configure the root logger for the branch merger CLI.

    Plain ``asctime [LEVEL] name: message`` lines by default, JSON lines when
    ``structured`` is set.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())
    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("aiohttp").setLevel("WARNING")
