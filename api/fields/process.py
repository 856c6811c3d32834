"""Field queue processor endpoint (can be called via Vercel cron)."""

import json

from src.services.field_queue import get_field_queue_services
from src.utils.errors import FieldRemovalError
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.queue_config import QueueConfig

logger = get_structured_logger(__name__)


def _response(status: int, payload: dict) -> dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload)
    }


def handler(request):
    """
    Drain the creation queue, then the removal queue.

    Can be called manually or via Vercel cron job.
    """
    with correlation_context(prefix="cron") as correlation_id:
        try:
            query_params = request.get("query", {}) or {}
            max_items = int(query_params.get("max_items", str(QueueConfig.DEFAULT_MAX_ITEMS)))

            services = get_field_queue_services()
            created = services.creation_worker.drain(max_items)

            try:
                removed = services.removal_worker.drain(max_items)
            except FieldRemovalError as e:
                logger.warning(
                    "Field removal failed, task left queued for retry",
                    correlation_id=correlation_id,
                    record_type_id=e.record_type_id,
                    field_name=e.field_name
                )
                return _response(500, {
                    "ok": False,
                    "creation_processed": created,
                    "error": str(e)
                })

            body = {
                "ok": True,
                "creation_processed": created,
                "removal_processed": removed,
                "max_items": max_items
            }
            if services.creation_worker.last_failure:
                # The creation batch stopped early; its item stays queued for retry
                body["ok"] = False
                body["last_error"] = services.creation_worker.last_failure
            return _response(200, body)

        except Exception as e:
            logger.error(
                "Error processing field queues",
                correlation_id=correlation_id,
                error=str(e),
                exc_info=True
            )
            return _response(500, {"error": str(e)})
