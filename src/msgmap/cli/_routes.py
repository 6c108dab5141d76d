"""``msgmap routes`` — list mapped templates.

Resolves an import string to a MessageMapper and prints every template
with its action and authorization path, in dispatch order.
"""

import argparse
import sys

from msgmap.cli._resolve import resolve_mapper


def run_routes(args: argparse.Namespace) -> None:
    """List the templates of a mapper as a TEMPLATE / ACTION / AUTH PATH table."""
    try:
        mapper = resolve_mapper(args.mapper)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    templates = mapper.templates
    if not templates:
        print("No templates mapped.")
        return

    rows = [(t.template, t.action, t.auth_path) for t in templates]

    max_template = max(max(len(r[0]) for r in rows), 8)  # "TEMPLATE" header
    max_action = max(max(len(r[1]) for r in rows), 6)  # "ACTION" header

    fmt = f"{{:<{max_template}}}  {{:<{max_action}}}  {{}}"
    print(fmt.format("TEMPLATE", "ACTION", "AUTH PATH"))
    sep_len = max_template + max_action + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for template, action, auth_path in rows:
        print(fmt.format(template, action, auth_path))
    if mapper.fallback:
        print(f"\nfallback: {mapper.fallback}")
