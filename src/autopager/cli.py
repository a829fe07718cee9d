"""Command line entry point: call a paginated JSON service operation."""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .command import Command, OperationSpec
from .config import Settings
from .exceptions import ConfigurationError, InvalidSelectError
from .logging import DefaultLogger, Logger
from .models import has_value
from .service_client import ServiceClient
from .strategies import FieldCursorStrategy


def positive_int(value: str) -> int:
    """argparse type for page sizes."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autopager",
        description="Invoke a paginated service operation and stream its results as JSON lines.",
    )
    parser.add_argument("url", help="Service endpoint URL")
    parser.add_argument("target_prefix", help="Target prefix, e.g. AmazonAthena")
    parser.add_argument("operation", help="Operation name, e.g. ListTableMetadata")
    parser.add_argument(
        "--items-field", required=True, help="Response field holding the result items"
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Request parameter; VALUE is parsed as JSON when possible (repeatable)",
    )
    parser.add_argument("--cursor-field", default="NextToken")
    parser.add_argument(
        "--response-cursor-field",
        default=None,
        help="Response cursor field when it differs from --cursor-field",
    )
    parser.add_argument("--page-size-field", default="MaxResults")
    parser.add_argument("--page-size", type=positive_int, default=None)
    parser.add_argument("--max-page-size", type=positive_int, default=None)
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of items")
    parser.add_argument("--next-token", default=None, help="Resume from this cursor")
    parser.add_argument(
        "--no-auto-iteration",
        action="store_true",
        help="Fetch one page and print the cursor needed to continue",
    )
    parser.add_argument(
        "--select", default=None, help="'*' for whole responses, '^Param' or a field path"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=sorted(Settings.LOG_LEVELS),
        type=str.upper,
    )
    parser.add_argument("--version", action="version", version=f"autopager {__version__}")
    return parser


def parse_parameters(pairs: List[str]) -> Dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; values that are valid JSON are decoded."""
    parameters: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid parameter '{pair}', expected KEY=VALUE")
        try:
            parameters[key] = json.loads(raw)
        except ValueError:
            parameters[key] = raw
    return parameters


def write_json_line(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, default=str) + "\n")
    sys.stdout.flush()


async def run(args: argparse.Namespace, settings: Settings, logger: Logger) -> int:
    parameters = parse_parameters(args.param)
    strategy = FieldCursorStrategy(
        cursor_field=args.cursor_field,
        items_field=args.items_field,
        page_size_field=args.page_size_field or None,
        response_cursor_field=args.response_cursor_field,
    )
    spec = OperationSpec(
        name=args.operation,
        strategy=strategy,
        items_field=args.items_field,
        service_max_page_size=args.max_page_size or settings.service_max_page_size,
    )

    async with ServiceClient(
        url=args.url, target_prefix=args.target_prefix, timeout=settings.timeout, logger=logger
    ) as client:
        command = Command(spec, client.invoker(args.operation), logger=logger)
        try:
            result = await command.execute(
                parameters,
                next_token=args.next_token,
                limit=args.limit,
                no_auto_iteration=args.no_auto_iteration,
                page_size=args.page_size,
                select=args.select,
                force=True,
                sink=write_json_line,
            )
        except (ConfigurationError, InvalidSelectError) as e:
            print(f"autopager: error: {e}", file=sys.stderr)
            return 2
        except Exception as e:
            print(f"autopager: {args.operation} failed: {e}", file=sys.stderr)
            return 1

    if result.outcome is not None and result.outcome.stopped_early:
        print(
            f"autopager: warning: stopped after {result.outcome.pages_delivered} page(s): "
            f"{result.outcome.error}",
            file=sys.stderr,
        )

    manual = args.no_auto_iteration or args.next_token is not None
    if manual and has_value(result.next_token):
        print(f"NextToken: {result.next_token}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        parse_parameters(args.param)
    except (ConfigurationError, ValueError) as e:
        parser.error(str(e))

    level = Settings.LOG_LEVELS[args.log_level] if args.log_level else settings.log_level
    logger = DefaultLogger(level=level)
    return asyncio.run(run(args, settings, logger))


if __name__ == "__main__":
    sys.exit(main())
