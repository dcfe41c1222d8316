import logging
import uuid
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class BatchLogger(logging.LoggerAdapter):
    """Prefixes every record with the id of the batch run that emitted it."""

    def __init__(self, logger: logging.Logger, batch_id: Optional[str] = None):
        super().__init__(logger, {"batch_id": batch_id or uuid.uuid4().hex[:8]})

    @property
    def batch_id(self) -> str:
        return self.extra["batch_id"]

    def process(self, msg, kwargs):
        return f"[batch {self.batch_id}] {msg}", kwargs
