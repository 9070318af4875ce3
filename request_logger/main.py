"""request-logger — inspect, summarize, clear, or serve a request log."""

import logging
import os
import sys
from argparse import ArgumentParser
from dataclasses import replace

from request_logger.config import load_config
from request_logger.errors import LogNotFoundError, LogStoreError
from request_logger.formatter import format_stats_json, format_stats_text, get_formatter
from request_logger.parser import parse_all
from request_logger.stats import aggregate
from request_logger.store import LogStore

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="request-logger",
        description="Inspect and summarize the per-request metrics log.",
    )
    parser.add_argument(
        "--config",
        help="Path to YAML config file (default: $CONFIG_PATH)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file to use instead of <log_dir>/<log_filename>",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    stats = sub.add_parser("stats", help="Show aggregated statistics")
    stats.add_argument("--output", choices=["text", "json"], default="text")

    view = sub.add_parser("view", help="Print parsed log records")
    view.add_argument("--lines", type=int, help="Show only the last N records")
    view.add_argument("--output", choices=["text", "json"], default="text")

    sub.add_parser("clear", help="Truncate the log file")
    sub.add_parser("serve", help="Run the admin web interface")
    return parser


def run(args) -> int:
    config = load_config(args.config)
    if args.log_file:
        config = replace(
            config,
            log_dir=os.path.dirname(args.log_file) or ".",
            log_filename=os.path.basename(args.log_file),
        )
    path = config.log_path
    store = LogStore(path, file_mode=config.file_mode)

    if args.command == "serve":
        from request_logger.web import create_app
        if not config.admin_token:
            logger.warning("ADMIN_TOKEN is not set, the /request-logs/ pages will refuse every request")
        app = create_app(config)
        logger.info("Serving request log %s on %s:%d", config.log_path, config.host, config.port)
        app.run(host=config.host, port=config.port)
        return 0

    if args.command == "clear":
        if not store.clear():
            print(f"Log file not found: {path}", file=sys.stderr)
            return 1
        print("Logs cleared successfully")
        return 0

    try:
        records = parse_all(store)
        if args.command == "stats":
            stats = aggregate(records, window_seconds=config.window_seconds)
            if args.output == "json":
                print(format_stats_json(stats))
            else:
                print(format_stats_text(stats))
            return 0

        records = list(records)
        if args.lines:
            records = records[-args.lines:]
        formatter = get_formatter(args.output)
        for record in records:
            print(formatter(record))
    except LogNotFoundError:
        print("No logs found.", file=sys.stderr)
        return 1
    return 0


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [request-logger] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    parser = build_parser()
    args = parser.parse_args()
    try:
        sys.exit(run(args))
    except LogStoreError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)
