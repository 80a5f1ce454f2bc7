import argparse
import asyncio
import json
import sys
from pathlib import Path

from .errors import MotdPingException
from .log import setup_logging
from .query import decode_favicon, parse_address, query_server
from .segments import segment_formatted_text
from .settings import load_settings
from .versions import DEFAULT_CANDIDATES, PROTOCOL_VERSIONS


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="motdping", description="Fetch and preview Minecraft server MOTDs"
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Settings file to use (default: settings.json in the user config dir)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log more (-v for attempts, -vv for everything)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Fetch a server's MOTD")
    query.add_argument("address", help="Server address, host[:port]")
    query.add_argument(
        "-f",
        "--format",
        default="legacy",
        choices=["legacy", "tagged", "minecraft", "minimessage"],
        help="Output syntax (default: legacy)",
    )
    query.add_argument(
        "--convert-rgb",
        action="store_true",
        default=None,
        help="Quantize hex colors to the 16 color palette",
    )
    query.add_argument(
        "-t", "--timeout", type=float, default=None, help="Seconds per attempt"
    )
    query.add_argument(
        "-p",
        "--protocol",
        action="append",
        default=None,
        help=f"Protocol version to try, repeatable (default: {', '.join(DEFAULT_CANDIDATES)})",
    )
    query.add_argument(
        "--icon", default=None, help="Write the server icon (PNG) to this path"
    )

    preview = subparsers.add_parser(
        "preview", help="Print the styled segments of formatted text as JSON lines"
    )
    preview.add_argument("text", help="Formatted text, e.g. '&cRed &lBold'")
    preview.add_argument(
        "-f",
        "--format",
        default="legacy",
        choices=["legacy", "tagged", "minecraft", "minimessage"],
        help="Input syntax (default: legacy)",
    )

    subparsers.add_parser("versions", help="List known protocol versions")

    return parser.parse_args(argv)


async def _query(args, settings) -> int:
    host, port = parse_address(args.address, settings.default_port)
    result = await query_server(
        host,
        port,
        args.format,
        convert_rgb=args.convert_rgb,
        candidates=args.protocol,
        settings=settings,
    )
    print(result.text)

    if args.icon:
        if result.icon is None:
            print("server has no icon", file=sys.stderr)
        else:
            Path(args.icon).write_bytes(decode_favicon(result.icon))
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2

    level = settings.log_level
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    setup_logging(level)

    if args.command == "versions":
        for version in PROTOCOL_VERSIONS:
            print(f"{version.label:<8} {version.number}")
        return 0

    if args.command == "preview":
        for segment in segment_formatted_text(args.text, args.format):
            print(json.dumps(segment.to_dict(), ensure_ascii=False))
        return 0

    if args.timeout is not None:
        settings.timeout = args.timeout
    try:
        settings.validate()
        return asyncio.run(_query(args, settings))
    except (MotdPingException, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
