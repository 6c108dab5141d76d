"""TemplateItem, MessageTemplate and MatchResult frozen dataclasses.

A ``MessageTemplate`` is the compiled form of a template string such as
``"karma for :key"``. It is built by ``compile_template()`` during setup
and only read afterwards: ``recognize()`` checks one message against it.
"""

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from msgmap.message import Message
from msgmap.routing.params import MultiWord, Parameter

logger = logging.getLogger("msgmap.template")


@dataclass(frozen=True, slots=True)
class TemplateItem:
    """A parsed token of a template.

    Static:  ``for``    (is_param=False)
    Single:  ``:key``   (is_param=True, name="key")
    Multi:   ``*rest``  (is_param=True, name="rest", multi=True)

    ``optional`` marks tokens inside ``[...]``. ``suffix`` marks the
    punctuation split off a parameter token (the ``?`` of ``:key?``).
    """

    value: str
    is_param: bool = False
    name: str | None = None
    multi: bool = False
    optional: bool = False
    suffix: bool = False


@dataclass(frozen=True, slots=True)
class TemplateOptions:
    """Per-template options resolved at compile time."""

    action: str
    auth_path: str
    public: bool | None = None
    private: bool | None = None
    defaults: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    requirements: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of recognizing a message against one template.

    Falsy on failure, and unpacks as ``(params, failure)``::

        params, failure = template.recognize(message)
        if params is None:
            log.debug(failure)
    """

    params: dict[str, Any] | None = None
    failure: str | None = None

    def __bool__(self) -> bool:
        return self.failure is None

    def __iter__(self) -> Iterator[Any]:
        yield self.params
        yield self.failure


@dataclass(frozen=True, slots=True)
class MessageTemplate:
    """A compiled template.

    ``parameters[i]`` is bound to capture group ``i + 1`` of ``pattern``.
    """

    template: str
    items: tuple[TemplateItem, ...]
    parameters: tuple[Parameter, ...]
    pattern: re.Pattern[str]
    options: TemplateOptions
    logger: logging.Logger = field(default=logger, repr=False, compare=False)

    @property
    def action(self) -> str:
        return self.options.action

    @property
    def auth_path(self) -> str:
        return self.options.auth_path

    def recognize(self, message: Message) -> MatchResult:
        """Match *message* and extract its parameters.

        Returns a ``MatchResult`` holding either the parameter mapping or
        the reason the message was not recognized. Never raises for a
        message that simply doesn't fit.
        """
        text = message.message
        options = self.options
        self.logger.debug("Testing %r against %r", text, self)

        if options.private is False and message.is_private:
            return MatchResult(failure=f"template {self.template!r} is not configured for private messages")
        if options.public is False and not message.is_private:
            return MatchResult(failure=f"template {self.template!r} is not configured for public messages")

        match = self.pattern.search(text)
        if match is None:
            return MatchResult(failure=f"{text!r} doesn't match {self.template!r} ({self.pattern.pattern})")
        if match.group(0) != text:
            return MatchResult(
                failure=(
                    f"{text!r} only matches {self.template!r} ({self.pattern.pattern}) "
                    f"partially: {match.group(0)!r}"
                )
            )

        self.logger.debug("%r matched %s with %r", text, self.pattern.pattern, match.groups())

        params: dict[str, Any] = {}
        for index, parameter in enumerate(self.parameters, start=1):
            raw = match.group(index)
            if parameter.multi:
                if raw is None:
                    value: Any = MultiWord.from_default(parameter.default, parameter.name)
                else:
                    value = MultiWord.from_text(raw)
            elif raw is None:
                if parameter.name not in options.defaults:
                    self.logger.warning("No default value for parameter %r specified", parameter.name)
                # a default of False only marks the parameter as optional
                value = None if parameter.default is False else parameter.default
            else:
                value = parameter.collect(raw)

            if value is not None:
                params[parameter.name] = value

        return MatchResult(params=params)

    def requirements_for(self, name: str) -> str:
        """Describe in words what parameter *name* must look like."""
        name = name.removeprefix("*").removeprefix(":")
        parameter = next((p for p in self.parameters if p.name == name), None)
        presence = parameter is not None and not parameter.optional

        rule = self.options.requirements.get(name)
        if rule is None:
            requirement = None
        elif isinstance(rule, re.Pattern):
            requirement = f"match {rule.pattern!r}"
        elif isinstance(rule, str):
            requirement = f"be equal to {rule!r}"
        elif parameter is not None and parameter.collector is not None:
            requirement = f"match {parameter.collector.pattern.pattern!r}"
        else:
            requirement = f"satisfy {rule!r}"

        if presence and requirement:
            return f"{name} must be present and {requirement}"
        if presence or requirement:
            return f"{name} must {requirement or 'be present'}"
        return f"{name} has no requirements"

    def __repr__(self) -> str:
        words = " ".join(item.value for item in self.items)
        defaults = f" || {dict(self.options.defaults)!r}" if self.options.defaults else ""
        when = f" when {dict(self.options.requirements)!r}" if self.options.requirements else ""
        return f"<MessageTemplate {words!r}{defaults}{when}>"
