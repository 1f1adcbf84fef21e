import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

# Structured fields the logout cascade attaches through `extra`
CASCADE_FIELDS = ("event", "service_id")


class StackgenJsonFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args, stack: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.stack = stack

    def add_fields(self, log_record, record, message_dict):
        super(StackgenJsonFormatter, self).add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = record.created
        if log_record.get("level"):
            log_record["severity"] = log_record["level"].upper()
        else:
            log_record["severity"] = record.levelname
        if self.stack and not log_record.get("stack"):
            log_record["stack"] = self.stack
        for field in CASCADE_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


def setup_logging(debug: bool = False, stack: Optional[str] = None):
    """
    Set up logging to output structured JSON to stdout.

    Args:
        debug: Lower the root level to DEBUG
        stack: Stack name stamped on every record
    """
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    root_logger.setLevel(log_level)

    log_handler = logging.StreamHandler(sys.stdout)
    formatter = StackgenJsonFormatter("%(timestamp)s %(severity)s %(name)s %(message)s", stack=stack)
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    # The portal app runs under uvicorn; keep its output in the same format
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = [log_handler]

    logging.debug("Logging configured to output structured JSON to stdout.")
