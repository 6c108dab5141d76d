"""``msgmap check`` — explain how one message would be dispatched.

Runs every template of the mapper against the message and prints the
outcome, without calling any handler or consulting the auth oracle.
Exits with code 1 when nothing would handle the message.
"""

import argparse
import sys

from msgmap.cli._resolve import resolve_mapper
from msgmap.message import TextMessage


def run_check(args: argparse.Namespace) -> None:
    """Print each template's verdict for ``args.text``."""
    try:
        mapper = resolve_mapper(args.mapper)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    message = TextMessage(
        args.text,
        is_private=args.private,
        source=args.source,
        replyto=args.replyto,
    )

    winner = None
    for template, failure in mapper.explain(message):
        if failure is None:
            if winner is None:
                winner = template
                print(f"  match  {template.template!r} -> {template.action} [{template.auth_path}]")
            else:
                print(f"  shadow {template.template!r} (an earlier template wins)")
        else:
            print(f"  skip   {template.template!r}: {failure}")

    if winner is not None:
        params = winner.recognize(message).params
        print(f"\n{winner.action}({params!r}) if {winner.auth_path} is allowed")
        return

    if mapper.fallback and mapper.responds_to(mapper.fallback):
        print(f"\nno template matches; fallback {mapper.fallback}() if allowed")
        return
    if mapper.fallback:
        print(f"\nno template matches and {mapper.identity} has no {mapper.fallback}() fallback")
        raise SystemExit(1)

    print("\nno template matches and no fallback is set")
    raise SystemExit(1)
