"""EXIF field removal progress endpoint."""

from api.fields._progress import make_progress_handler
from src.utils.queue_config import QueueConfig

handler = make_progress_handler(QueueConfig.REMOVAL_QUEUE_NAME)
