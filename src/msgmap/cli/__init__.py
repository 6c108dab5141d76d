"""msgmap CLI — inspect the templates of a mapper.

Entry point registered as ``msgmap`` in ``pyproject.toml``::

    [project.scripts]
    msgmap = "msgmap.cli:main"
"""

import argparse
import logging
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``msgmap`` command."""
    parser = argparse.ArgumentParser(
        prog="msgmap",
        description="msgmap — text-command routing for chat services.",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Log template compilation and matching at debug level",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- msgmap routes ----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List mapped templates")
    routes_parser.add_argument(
        "mapper",
        help="Import string (e.g. myplugin:mapper)",
    )

    # -- msgmap check -----------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Show how a message would be dispatched")
    check_parser.add_argument(
        "mapper",
        help="Import string (e.g. myplugin:mapper)",
    )
    check_parser.add_argument("text", help="Message text to route")
    check_parser.add_argument(
        "--private",
        action="store_true",
        help="Treat the message as a private message",
    )
    check_parser.add_argument("--source", default=None, help="Sender of the message")
    check_parser.add_argument("--replyto", default=None, help="Reply target of the message")

    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from msgmap.cli._routes import run_routes

        run_routes(args)
    elif args.command == "check":
        from msgmap.cli._check import run_check

        run_check(args)
