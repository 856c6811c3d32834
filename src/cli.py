"""
Command line interface for the EXIF field queues.

Examples:
  exif-fields queue-fields --field-keys=make,model
  exif-fields process-queue --max-items=20
  exif-fields queue-remove-fields --record-types=photo --all-fields --dry-run
"""

import argparse
import sys
from typing import Optional

from src.models.progress import ProgressSnapshot
from src.services.field_queue import FieldQueueServices, get_field_queue_services
from src.utils.errors import FieldCreationError, FieldQueueError
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig
from src.utils.queue_config import QueueConfig, load_field_settings, parse_csv_option

logger = get_structured_logger(__name__)


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _print_status(title: str, snapshot: ProgressSnapshot) -> None:
    print(title)
    print(f"  State:           {snapshot.state.value}")
    print(f"  Items in queue:  {snapshot.items_in_queue}")
    if snapshot.total_tasks:
        print(
            f"  Progress:        {snapshot.processed_tasks}/{snapshot.total_tasks} "
            f"({snapshot.percentage}%)"
        )
        print(f"  Elapsed:         {snapshot.elapsed_seconds}s")
    if snapshot.failed_tasks:
        print(f"  Failed attempts: {snapshot.failed_tasks}")
    if snapshot.last_error:
        print(f"  Last error:      {snapshot.last_error}")
    if snapshot.has_stuck_items:
        print("  Warning: the queue has items that cannot be claimed. Run the clean command.")
    if snapshot.last_success:
        print(
            f"  Last batch:      {snapshot.last_success.count} tasks in "
            f"{snapshot.last_success.execution_time}s"
        )


def _selection(services: FieldQueueServices, args: argparse.Namespace) -> tuple[list[str], list[str]]:
    """Field keys and record types from options, falling back to configured settings."""
    settings = load_field_settings()
    field_keys = parse_csv_option(args.field_keys) or sorted(settings.enabled_field_keys)
    record_types = parse_csv_option(args.record_types) or sorted(settings.enabled_record_types)
    if not field_keys:
        field_keys = services.registry.ordered_keys()
    return field_keys, record_types


def cmd_create_fields(services: FieldQueueServices, args: argparse.Namespace) -> int:
    settings = load_field_settings()
    if not settings.auto_create_enabled and not args.force:
        print("Automatic field creation is disabled. Use --force to create fields anyway.")
        return 1

    field_keys, record_types = _selection(services, args)
    planned = services.creation_planner.count_planned(field_keys, record_types, True)
    if planned == 0:
        print("All selected EXIF fields already exist.")
        return 0

    if not args.yes and not _confirm(f"Create {planned} EXIF fields?"):
        print("Cancelled.")
        return 0

    queued = services.creation_planner.plan(field_keys, record_types, True)
    created = 0
    while services.creation_queue.count() > 0:
        processed = services.creation_worker.drain(QueueConfig.DEFAULT_MAX_ITEMS)
        created += processed
        if processed == 0:
            break

    remaining = services.creation_queue.count()
    if remaining:
        snapshot = services.tracker.get_progress(services.creation_queue.name)
        raise FieldCreationError(
            f"Processed {created} of {queued} field tasks; {remaining} remain queued "
            f"(last error: {snapshot.last_error or 'unknown'})"
        )

    print(f"Processed {created} field creation tasks.")
    return 0


def cmd_queue_fields(services: FieldQueueServices, args: argparse.Namespace) -> int:
    field_keys, record_types = _selection(services, args)
    queued = services.creation_planner.plan(field_keys, record_types, True)
    if queued == 0:
        print("No missing EXIF fields, nothing queued.")
    else:
        print(f"Queued {queued} field creation tasks. Run process-queue to create them.")
    return 0


def cmd_queue_status(services: FieldQueueServices, args: argparse.Namespace) -> int:
    _print_status("EXIF field creation queue", services.tracker.get_progress(services.creation_queue.name))
    return 0


def cmd_process_queue(services: FieldQueueServices, args: argparse.Namespace) -> int:
    processed = services.creation_worker.drain(args.max_items)
    remaining = services.creation_queue.count()
    print(f"Processed {processed} field creation tasks, {remaining} remaining.")

    if services.creation_worker.last_failure:
        print(f"Stopped after a failure: {services.creation_worker.last_failure}")
        return 1
    if remaining and services.tracker.has_stuck_items(services.creation_queue.name):
        print("Remaining items are claimed but not being processed. Run clean-queue to clear them.")
        return 1
    return 0


def cmd_clean_queue(services: FieldQueueServices, args: argparse.Namespace) -> int:
    removed = services.tracker.clean_stuck_items(services.creation_queue.name)
    print(f"Removed {removed} stuck items from the field creation queue.")
    return 0


def cmd_queue_remove_fields(services: FieldQueueServices, args: argparse.Namespace) -> int:
    record_types = parse_csv_option(args.record_types)
    field_names = parse_csv_option(args.field_names)
    tasks = services.removal_planner.plan(
        record_types,
        remove_all_fields=args.all_fields,
        field_names=field_names,
        dry_run=args.dry_run,
    )

    if args.dry_run:
        print(f"Dry run: {len(tasks)} fields would be removed.")
        for task in tasks:
            print(f"  {task.record_type_id}: {task.field_name}")
        return 0

    if not tasks:
        print("No matching fields found, nothing queued.")
    else:
        print(f"Queued {len(tasks)} field removal tasks. Run process-removal-queue to remove them.")
    return 0


def cmd_removal_status(services: FieldQueueServices, args: argparse.Namespace) -> int:
    _print_status("EXIF field removal queue", services.tracker.get_progress(services.removal_queue.name))
    return 0


def cmd_process_removal_queue(services: FieldQueueServices, args: argparse.Namespace) -> int:
    processed = services.removal_worker.drain(args.max_items)
    print(
        f"Processed {processed} field removal tasks, "
        f"{services.removal_queue.count()} remaining."
    )
    return 0


def cmd_clear_stuck_removal_queue(services: FieldQueueServices, args: argparse.Namespace) -> int:
    removed = services.tracker.clean_stuck_items(services.removal_queue.name)
    print(f"Removed {removed} stuck items from the field removal queue.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exif-fields",
        description="Manage EXIF metadata fields through the creation and removal queues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:" + __doc__.split("Examples:", 1)[1],
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-fields", help="Plan and create missing EXIF fields now")
    create.add_argument("--field-keys", type=str, default=None, help="Comma-separated EXIF field keys")
    create.add_argument("--record-types", type=str, default=None, help="Comma-separated record type ids")
    create.add_argument("--force", action="store_true", help="Create even when auto-create is disabled")
    create.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")
    create.set_defaults(func=cmd_create_fields)

    queue = subparsers.add_parser("queue-fields", help="Queue missing EXIF fields for background creation")
    queue.add_argument("--field-keys", type=str, default=None, help="Comma-separated EXIF field keys")
    queue.add_argument("--record-types", type=str, default=None, help="Comma-separated record type ids")
    queue.set_defaults(func=cmd_queue_fields)

    status = subparsers.add_parser("queue-status", help="Show field creation progress")
    status.set_defaults(func=cmd_queue_status)

    process = subparsers.add_parser("process-queue", help="Process queued field creation tasks")
    process.add_argument(
        "--max-items", type=int, default=QueueConfig.DEFAULT_MAX_ITEMS,
        help=f"Maximum tasks to process (default: {QueueConfig.DEFAULT_MAX_ITEMS})",
    )
    process.set_defaults(func=cmd_process_queue)

    clean = subparsers.add_parser("clean-queue", help="Remove stuck items from the creation queue")
    clean.set_defaults(func=cmd_clean_queue)

    remove = subparsers.add_parser("queue-remove-fields", help="Queue EXIF fields for removal")
    remove.add_argument("--record-types", type=str, required=True, help="Comma-separated record type ids")
    which = remove.add_mutually_exclusive_group(required=True)
    which.add_argument("--all-fields", action="store_true", help="Remove every EXIF field on the record types")
    which.add_argument("--field-names", type=str, default=None, help="Comma-separated field names")
    remove.add_argument("--dry-run", action="store_true", help="Show what would be removed without queuing")
    remove.set_defaults(func=cmd_queue_remove_fields)

    removal_status = subparsers.add_parser("removal-status", help="Show field removal progress")
    removal_status.set_defaults(func=cmd_removal_status)

    process_removal = subparsers.add_parser("process-removal-queue", help="Process queued field removals")
    process_removal.add_argument(
        "--max-items", type=int, default=QueueConfig.DEFAULT_MAX_ITEMS,
        help=f"Maximum tasks to process (default: {QueueConfig.DEFAULT_MAX_ITEMS})",
    )
    process_removal.set_defaults(func=cmd_process_removal_queue)

    clear_removal = subparsers.add_parser(
        "clear-stuck-removal-queue", help="Remove stuck items from the removal queue"
    )
    clear_removal.set_defaults(func=cmd_clear_stuck_removal_queue)

    return parser


def main(argv: Optional[list[str]] = None, services: Optional[FieldQueueServices] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    LoggingConfig.setup_logging(stream=sys.stderr)

    with correlation_context(prefix="cli") as correlation_id:
        try:
            services = services or get_field_queue_services()
            return args.func(services, args)
        except FieldQueueError as e:
            logger.error(
                "Command failed",
                correlation_id=correlation_id,
                command=args.command,
                error=str(e)
            )
            print(f"Error: {e}")
            return 1


if __name__ == "__main__":
    sys.exit(main())
