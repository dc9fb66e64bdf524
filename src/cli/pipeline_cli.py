"""
Operator CLI for the record pipeline.

Usage:
    python -m src.cli.pipeline_cli init-db
    python -m src.cli.pipeline_cli enqueue --body '{"id": "r-1", "data": {"a": 1}}'
    python -m src.cli.pipeline_cli consume [--max-batches N] [--workers N] [--stop-when-empty]
    python -m src.cli.pipeline_cli export --id <record_id>
    python -m src.cli.pipeline_cli get-record --id <record_id>
    python -m src.cli.pipeline_cli queue-stats
    python -m src.cli.pipeline_cli serve [--host HOST] [--port PORT]

Every command accepts --config <path> (YAML settings file); settings are
otherwise read from the environment.
"""

import argparse
import json
import signal
import sys

from src.core.collaborators import Collaborators, build_collaborators
from src.core.errors import PipelineError
from src.core.settings import load_settings
from src.observability.correlation import generate_request_id
from src.observability.logger import get_logger, log_operation
from src.observability.metrics import start_metrics_server
from src.utils.validation import validate_positive_int
from src.warehouse.schema_mgmt import SchemaManager

logger = get_logger(__name__)


def _build(args: argparse.Namespace, ensure_schema: bool = False) -> Collaborators:
    settings = load_settings(args.config)
    return build_collaborators(settings, ensure_schema=ensure_schema, function_name=f"cli.{args.command}")


def _print_json(value) -> None:
    print(json.dumps(value, indent=2, default=str))


def init_db_command(args) -> int:
    """
    Create the records and queue tables.

    Args:
        args: Command line arguments
    """
    collaborators = _build(args)
    try:
        if collaborators.pool is None:
            print("Store backend is 'memory'; nothing to initialize.")
            return 0

        with log_operation("Initialize schema", logger=collaborators.logger):
            SchemaManager(collaborators.pool).ensure_schema()
        print("Schema ready.")
        return 0
    finally:
        collaborators.close()


def enqueue_command(args) -> int:
    """
    Enqueue a single request body.

    Args:
        args: Command line arguments
    """
    collaborators = _build(args)
    try:
        request_id = args.request_id or generate_request_id()
        payload = collaborators.producer().enqueue(args.body, request_id)
        _print_json({"accepted": True, "id": payload["id"], "requestId": request_id})
        return 0
    finally:
        collaborators.close()


def consume_command(args) -> int:
    """
    Run the consumer loop until interrupted.

    Args:
        args: Command line arguments
    """
    if args.workers is not None:
        validate_positive_int(args.workers, "workers")
    if args.max_batches is not None:
        validate_positive_int(args.max_batches, "max-batches")

    collaborators = _build(args, ensure_schema=args.init_db)
    runner = collaborators.runner(max_workers=args.workers)

    def handle_signal(signum, frame):  # type: ignore[no-untyped-def]
        signal_name = signal.Signals(signum).name
        collaborators.logger.info(f"Received {signal_name} signal, stopping consumer")
        runner.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        if args.metrics:
            start_metrics_server(collaborators.settings.metrics_port)

        processed = runner.run(
            max_batches=args.max_batches,
            stop_when_empty=args.stop_when_empty,
        )
        print(f"Processed {processed} batch(es).")
        return 0
    finally:
        collaborators.close()


def export_command(args) -> int:
    """
    Export a stored record to blob storage.

    Args:
        args: Command line arguments
    """
    collaborators = _build(args)
    try:
        result = collaborators.exporter().export(args.id)
        if not result.found:
            print(f"Record not found: {args.id}")
            return 1

        _print_json({"ok": True, "id": result.record_id, "key": result.key})
        return 0
    finally:
        collaborators.close()


def get_record_command(args) -> int:
    """
    Print a stored record.

    Args:
        args: Command line arguments
    """
    collaborators = _build(args)
    try:
        record = collaborators.store.get(args.id)
        if record is None:
            print(f"Record not found: {args.id}")
            return 1

        _print_json(record.to_document())
        return 0
    finally:
        collaborators.close()


def queue_stats_command(args) -> int:
    """
    Print queue depth.

    Args:
        args: Command line arguments
    """
    collaborators = _build(args)
    try:
        stats = collaborators.queue.stats()

        print(f"\n{'=' * 40}")
        print("QUEUE STATISTICS")
        print(f"{'=' * 40}")
        print(f"Total messages:     {stats['total']}")
        print(f"Visible:            {stats['visible']}")
        print(f"In flight:          {stats['in_flight']}")
        print(f"{'=' * 40}\n")
        return 0
    finally:
        collaborators.close()


def serve_command(args) -> int:
    """
    Serve the HTTP API with uvicorn.

    Args:
        args: Command line arguments
    """
    import uvicorn

    from src.api import create_app

    collaborators = _build(args, ensure_schema=args.init_db)
    app = create_app(collaborators, close_on_shutdown=True)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


COMMANDS = {
    "init-db": init_db_command,
    "enqueue": enqueue_command,
    "consume": consume_command,
    "export": export_command,
    "get-record": get_record_command,
    "queue-stats": queue_stats_command,
    "serve": serve_command,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Record pipeline operator CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        help="Path to YAML settings file (default: $PIPELINE_CONFIG)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create the records and queue tables")

    enqueue_parser = subparsers.add_parser("enqueue", help="Enqueue a request body")
    enqueue_parser.add_argument(
        "--body",
        required=True,
        help="JSON request body, e.g. '{\"id\": \"r-1\", \"data\": {}}'"
    )
    enqueue_parser.add_argument(
        "--request-id",
        help="Correlation id to stamp on the message (default: generated)"
    )

    consume_parser = subparsers.add_parser("consume", help="Run the batch consumer")
    consume_parser.add_argument(
        "--max-batches",
        type=int,
        help="Stop after this many batches (default: run until interrupted)"
    )
    consume_parser.add_argument(
        "--workers",
        type=int,
        help="Worker threads per batch (default: consumer_workers setting)"
    )
    consume_parser.add_argument(
        "--stop-when-empty",
        action="store_true",
        help="Exit as soon as the queue has no visible messages"
    )
    consume_parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create tables before consuming"
    )
    consume_parser.add_argument(
        "--metrics",
        action="store_true",
        help="Expose Prometheus metrics on the metrics_port setting"
    )

    export_parser = subparsers.add_parser("export", help="Export a record to blob storage")
    export_parser.add_argument("--id", required=True, help="Record ID")

    get_parser = subparsers.add_parser("get-record", help="Print a stored record")
    get_parser.add_argument("--id", required=True, help="Record ID")

    subparsers.add_parser("queue-stats", help="Display queue statistics")

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")
    serve_parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create tables before serving"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return COMMANDS[args.command](args)
    except (PipelineError, ValueError, FileNotFoundError) as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"\nError: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
