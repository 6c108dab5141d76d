"""Template compiler — template string to ``MessageTemplate``.

A template is a whitespace-separated command grammar::

    "karma"                 static word
    "karma for :key"        :key   one word
    "echo *text"            *text  the rest of the message
    "seen :nick?"           trailing punctuation is a literal suffix
    "karma [for] :key"      [...]  optional segment

Compilation happens once, at ``MessageMapper.map()`` time. Every problem
with the template raises here, so a broken command never reaches dispatch.
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import Any

from msgmap._internal.regex import embeddable
from msgmap._internal.types import Requirement
from msgmap.errors import CollectorError, TemplateError
from msgmap.routing.auth_path import derive_auth_path
from msgmap.routing.params import Parameter, make_collector
from msgmap.routing.template import MessageTemplate, TemplateItem, TemplateOptions

logger = logging.getLogger("msgmap.template")

_LEXEME_RE = re.compile(r"\s+|\[|\]|[^\s\[\]]+")
_PARAM_RE = re.compile(r"^([:*])(\w+)(.*)$")


def tokenize(template: str) -> list[str]:
    """Split a template into words, whitespace runs, and brackets."""
    return _LEXEME_RE.findall(template.strip())


def parse_template(template: str) -> list[TemplateItem]:
    """Parse a template string into items.

    Examples::

        "karma for :key" -> [TemplateItem("karma"), TemplateItem("for"),
                             TemplateItem(":key", is_param=True, name="key")]
        "seen :nick?"    -> [..., TemplateItem(":nick", ...), TemplateItem("?", suffix=True)]

    Raises ``TemplateError`` for an empty template, unbalanced brackets,
    a first item that is dynamic or optional, or a repeated parameter name.
    """
    if not isinstance(template, str):
        msg = f"Template should be a string, got {type(template).__name__}"
        raise TemplateError(msg)

    items: list[TemplateItem] = []
    depth = 0
    for lexeme in tokenize(template):
        if lexeme.isspace():
            continue
        if lexeme == "[":
            depth += 1
            continue
        if lexeme == "]":
            depth -= 1
            if depth < 0:
                raise TemplateError("Illegal template -- unbalanced ']'", template)
            continue

        optional = depth > 0
        param = _PARAM_RE.match(lexeme)
        if param is None:
            items.append(TemplateItem(lexeme, optional=optional))
            continue

        sigil, name, suffix = param.groups()
        items.append(
            TemplateItem(
                f"{sigil}{name}",
                is_param=True,
                name=name,
                multi=sigil == "*",
                optional=optional,
            )
        )
        if suffix:
            items.append(TemplateItem(suffix, optional=optional, suffix=True))

    if depth:
        raise TemplateError("Illegal template -- unbalanced '['", template)
    if not items:
        raise TemplateError("Illegal template -- template is empty", template)
    if items[0].is_param:
        raise TemplateError("Illegal template -- first component cannot be dynamic", template)
    if items[0].optional:
        raise TemplateError("Illegal template -- first component cannot be optional", template)

    seen: set[str] = set()
    for item in items:
        if item.is_param:
            if item.name in seen:
                raise TemplateError(f"Illegal template -- duplicate item {item.name}", template)
            seen.add(item.name)  # type: ignore[arg-type]

    return items


def requirement_source(rule: Requirement, name: str) -> str:
    """Pattern fragment a requirement contributes to the template pattern."""
    if isinstance(rule, re.Pattern):
        return embeddable(rule)
    if isinstance(rule, str):
        return re.escape(rule)
    if isinstance(rule, Mapping):
        pattern = rule.get("regexp")
    elif isinstance(rule, (list, tuple)) and rule:
        pattern = rule[0]
    else:
        msg = f"Odd requirement {rule!r} of type {type(rule).__name__} for parameter {name!r}"
        raise CollectorError(msg)
    if not isinstance(pattern, re.Pattern):
        msg = f"Requirement {rule!r} for parameter {name!r} doesn't hold a compiled pattern"
        raise CollectorError(msg)
    return embeddable(pattern)


def build_pattern(
    template: str,
    defaults: Mapping[str, Any],
    requirements: Mapping[str, Requirement],
) -> str:
    """Build the anchored pattern source for a template.

    Whitespace becomes ``\\s+``; ``[...]`` becomes an optional
    non-capturing group; each parameter becomes one capturing group,
    itself optional when the parameter has a default.
    """
    parts: list[str] = []
    space = False
    # set when a "[" has already taken the whitespace in front of it
    glued = False
    for lexeme in tokenize(template):
        if lexeme.isspace():
            space = not glued
            continue
        lead = r"\s+" if space else ""
        space = glued = False

        if lexeme == "[":
            parts.append(f"(?:{lead}")
            glued = bool(lead)
            continue
        if lexeme == "]":
            # whitespace before "]" belongs to whatever follows the group
            parts.append(")?")
            space = bool(lead)
            continue

        param = _PARAM_RE.match(lexeme)
        if param is None:
            parts.append(lead + re.escape(lexeme))
            continue

        sigil, name, suffix = param.groups()
        rule = requirements.get(name)
        if rule is None:
            sub = r"\S+" if sigil == ":" else ".*"
        else:
            sub = requirement_source(rule, name)
        if name in defaults:
            parts.append(f"(?:{lead}({sub}))?")
        else:
            parts.append(f"{lead}({sub})")
        parts.append(re.escape(suffix))

    return "^" + "".join(parts) + "$"


def compile_template(
    identity: str,
    template: str,
    *,
    action: str | None = None,
    defaults: Mapping[str, Any] | None = None,
    requirements: Mapping[str, Requirement] | None = None,
    auth_path: str | None = None,
    auth: str | None = None,
    full_auth_path: str | None = None,
    public: bool | None = None,
    private: bool | None = None,
    separator: str = "::",
    logger: logging.Logger = logger,
) -> MessageTemplate:
    """Compile *template* for the dispatch target named *identity*.

    Args:
        identity: Name of the dispatch target; seeds the auth path.
        template: The template string.
        action: Method to invoke on match. Defaults to the first word.
        defaults: Parameter defaults; a parameter with a default is optional.
        requirements: Per-parameter rules: compiled pattern, literal
            string, ``(pattern, index)`` pair, or ``{"regexp", "index"}``.
        auth_path: Authorization path override (see ``derive_auth_path``).
        auth: Deprecated spelling of ``auth_path``.
        full_auth_path: Use this exact authorization path.
        public: ``False`` keeps the template away from channel messages.
        private: ``False`` keeps the template away from private messages.

    Raises ``TemplateError`` or ``CollectorError`` on invalid input.
    """
    defaults = dict(defaults or {})
    requirements = dict(requirements or {})
    items = parse_template(template)

    parameters: list[Parameter] = []
    for item in items:
        if not item.is_param:
            continue
        name = item.name or ""
        parameter = Parameter(name, multi=item.multi)
        parameter = replace(
            parameter,
            optional=item.optional or name in defaults,
            default=defaults.get(name),
            collector=make_collector(requirements.get(name)),
        )
        parameters.append(parameter)
    logger.debug("Items: %r; parameters: %r", items, parameters)

    source = build_pattern(template, defaults, requirements)
    try:
        pattern = re.compile(source, re.MULTILINE)
    except re.error as exc:
        raise TemplateError(f"Illegal template -- pattern {source!r} doesn't compile ({exc})", template) from exc
    if pattern.groups != len(parameters):
        raise TemplateError(
            f"Illegal template -- pattern has {pattern.groups} groups for {len(parameters)} parameters",
            template,
        )
    logger.debug("Command %r in %s will match using %s", template, identity, pattern.pattern)

    if auth is not None:
        logger.warning("Command %r in %s uses old auth syntax, please upgrade", template, identity)
        if auth_path is None:
            auth_path = auth
    if full_auth_path is not None:
        logger.warning("Command %r in %s sets full_auth_path, please don't do this", template, identity)
        resolved_auth = full_auth_path
    else:
        resolved_auth = derive_auth_path(identity, items, auth_path, separator)
    logger.debug("Command %r in %s will use auth path %s", template, identity, resolved_auth)

    options = TemplateOptions(
        action=action or items[0].value,
        auth_path=resolved_auth,
        public=public,
        private=private,
        defaults=MappingProxyType(defaults),
        requirements=MappingProxyType(requirements),
    )
    return MessageTemplate(
        template=template,
        items=tuple(items),
        parameters=tuple(parameters),
        pattern=pattern,
        options=options,
        logger=logger,
    )
