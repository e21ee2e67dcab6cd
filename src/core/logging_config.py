import logging
import sys
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "ballot-engine"

# Request fields the routers pass through `extra=`; grouped under "context" in each line
CONTEXT_FIELDS = ("user_id", "contest_id", "measure_id")

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    One JSON object per line, tagged with the service name.

    Request identifiers a router attaches to a record are moved out of the
    top level into a `context` object, so log queries can filter on
    context.user_id or context.contest_id regardless of which handler logged.
    """
    def __init__(self, *args, service: str = SERVICE_NAME, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = log_record.get('timestamp') or record.created
        log_record['level'] = record.levelname
        log_record['service'] = self.service
        log_record['logger'] = log_record.pop('name', record.name)
        log_record['location'] = f"{record.module}:{record.lineno}"

        context = {key: log_record.pop(key) for key in CONTEXT_FIELDS if key in log_record}
        if context:
            log_record['context'] = context

def setup_logging(log_level_str: str = "INFO", service: str = SERVICE_NAME) -> logging.Logger:
    """
    Configures structured JSON logging on the root logger.

    Safe to call more than once: the JSON handler is only attached the first time,
    later calls just adjust the level.
    """
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not any(isinstance(h, logging.StreamHandler) and isinstance(h.formatter, CustomJsonFormatter) for h in root_logger.handlers):
        log_handler = logging.StreamHandler(sys.stdout)
        log_handler.setFormatter(CustomJsonFormatter('%(timestamp)s %(name)s %(message)s', service=service))
        root_logger.addHandler(log_handler)
        root_logger.info(f"Structured JSON logging configured with level: {logging.getLevelName(log_level)}")
    else:
        root_logger.info(f"Structured JSON logging already configured. Current level: {logging.getLevelName(root_logger.getEffectiveLevel())}")
    return root_logger
