"""EXIF field creation progress endpoint."""

from api.fields._progress import make_progress_handler
from src.utils.queue_config import QueueConfig

handler = make_progress_handler(QueueConfig.CREATION_QUEUE_NAME)
