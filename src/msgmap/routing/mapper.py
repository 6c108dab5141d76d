"""MessageMapper — ordered template table with first-match dispatch.

Templates are registered during setup and frozen into an immutable,
ordered table before the first message is dispatched.
"""

import logging
import threading
from collections.abc import Iterator
from typing import Any

from msgmap._internal.types import Handler, Requirement
from msgmap.auth import AuthOracle
from msgmap.config import MapperConfig
from msgmap.errors import ConfigurationError
from msgmap.message import Message
from msgmap.routing.compiler import compile_template
from msgmap.routing.template import MessageTemplate

_log = logging.getLogger("msgmap.mapper")


class MessageMapper:
    """Routes text messages to methods of a dispatch target.

    Usage::

        class Karma:
            name = "karma"

            def __init__(self, auth):
                self.mapper = MessageMapper(self, auth)
                self.mapper.map("karma for :key")
                self.mapper.map("karma :key", defaults={"key": False})
                self.mapper.map("karmastats", action="stats")

            def karma(self, message, params): ...
            def stats(self, message, params): ...
            def usage(self, message, params): ...

        karma.mapper.handle(message)  # True if a handler ran

    Templates are tried in the order they were mapped; the first one that
    recognizes the message wins. A message that matches but fails the
    authorization check is dropped without trying later templates.
    """

    __slots__ = (
        "_auth",
        "_config",
        "_fallback",
        "_frozen",
        "_identity",
        "_lock",
        "_log",
        "_target",
        "_templates",
    )

    def __init__(
        self,
        target: Any,
        auth: AuthOracle,
        *,
        name: str | None = None,
        config: MapperConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        identity = name if name is not None else getattr(target, "name", None)
        if not isinstance(identity, str) or not identity:
            msg = f"Can't find auth base in {target!r}: pass name= or give it a 'name' attribute"
            raise ConfigurationError(msg)
        if not callable(getattr(auth, "allow", None)):
            msg = f"{auth!r} is not an authorization oracle (no allow() method)"
            raise ConfigurationError(msg)

        self._target = target
        self._auth = auth
        self._identity = identity
        self._config = config or MapperConfig()
        self._log = logger or _log
        self._fallback = self._config.fallback
        self._templates: list[MessageTemplate] = []
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def identity(self) -> str:
        """Name of the dispatch target; first part of every auth path."""
        return self._identity

    @property
    def fallback(self) -> str | None:
        """Method called when no template matches (``None`` disables it)."""
        return self._fallback

    @fallback.setter
    def fallback(self, value: str | None) -> None:
        with self._lock:
            self._check_not_frozen()
            self._fallback = value

    def map(
        self,
        template: str,
        *,
        action: str | None = None,
        defaults: dict[str, Any] | None = None,
        requirements: dict[str, Requirement] | None = None,
        auth_path: str | None = None,
        auth: str | None = None,
        full_auth_path: str | None = None,
        public: bool | None = None,
        private: bool | None = None,
    ) -> MessageTemplate:
        """Compile *template* and append it to the table.

        By default a match calls the method named after the first word of
        the template; ``action`` overrides it. See ``compile_template`` for
        the other options.

        Examples::

            # 'karmastats' calls stats()
            mapper.map("karmastats", action="stats")
            # 'karma' with an optional key
            mapper.map("karma :key", defaults={"key": False})
            # channel form, and private form that needs the channel
            mapper.map("urls search :channel :limit :string", action="search",
                       defaults={"limit": 4},
                       requirements={"limit": re.compile(r"^\\d+$")},
                       public=False)
            mapper.map("urls search :limit :string", action="search",
                       defaults={"limit": 4},
                       requirements={"limit": re.compile(r"^\\d+$")},
                       private=False)

        Raises ``TemplateError``/``CollectorError`` for a bad template and
        ``RuntimeError`` once the mapper is frozen.
        """
        compiled = compile_template(
            self._identity,
            template,
            action=action,
            defaults=defaults,
            requirements=requirements,
            auth_path=auth_path,
            auth=auth,
            full_auth_path=full_auth_path,
            public=public,
            private=private,
            separator=self._config.separator,
            logger=self._log,
        )
        if self._resolve(compiled.action) is None:
            self._log.debug(
                "%s has no action %r for template %r yet",
                self._identity,
                compiled.action,
                template,
            )
        with self._lock:
            self._check_not_frozen()
            self._templates.append(compiled)
        return compiled

    def responds_to(self, action: str) -> bool:
        """True if the dispatch target has a public method named *action*."""
        return self._resolve(action) is not None

    def freeze(self) -> None:
        """Freeze the table. No more templates can be mapped."""
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def templates(self) -> tuple[MessageTemplate, ...]:
        """All templates, in dispatch order."""
        return tuple(self._templates)

    @property
    def last(self) -> MessageTemplate | None:
        """The most recently mapped template."""
        return self._templates[-1] if self._templates else None

    def __iter__(self) -> Iterator[MessageTemplate]:
        return iter(self.templates)

    def __len__(self) -> int:
        return len(self._templates)

    def explain(self, message: Message) -> list[tuple[MessageTemplate, str | None]]:
        """Report, for every template, why *message* was or wasn't recognized.

        ``None`` means the template would run (authorization aside).
        Diagnostics only: no handler is called and no oracle is consulted.
        """
        self._ensure_frozen()
        report: list[tuple[MessageTemplate, str | None]] = []
        for template in self._templates:
            result = template.recognize(message)
            failure = result.failure
            if result and self._resolve(template.action) is None:
                failure = f"{self._identity} does not respond to action {template.action!r}"
            report.append((template, failure))
        return report

    def handle(self, message: Message) -> bool:
        """Dispatch *message* to the first template that recognizes it.

        Returns ``True`` if a handler (matched or fallback) was invoked.
        """
        self._ensure_frozen()
        failures: list[tuple[MessageTemplate, str]] = []

        for template in self._templates:
            params, failure = template.recognize(message)
            if params is None:
                failures.append((template, failure or "no match"))
                continue

            handler = self._resolve(template.action)
            if handler is None:
                failures.append((template, f"{self._identity} does not respond to action {template.action!r}"))
                continue

            auth_path = template.auth_path
            self._log.debug("Checking auth for %s", auth_path)
            if self._auth.allow(auth_path, message.source, message.replyto):
                self._log.debug("Template match found and auth'd: %r %r", template.action, params)
                handler(message, params)
                return True

            # a structural match that fails auth ends the dispatch here
            self._log.debug("Auth failed for %s", auth_path)
            return False

        for template, reason in failures:
            self._log.debug("%r => %s", template, reason)

        self._log.debug("No handler found, trying fallback")
        if self._fallback:
            handler = self._resolve(self._fallback)
            if handler is not None and self._auth.allow(self._fallback, message.source, message.replyto):
                handler(message, {})
                return True
        return False

    def _resolve(self, action: str) -> Handler | None:
        # private and dunder names are never actions
        if action.startswith("_"):
            return None
        handler = getattr(self._target, action, None)
        return handler if callable(handler) else None

    def _ensure_frozen(self) -> None:
        if not self._frozen:
            self.freeze()

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = f"Cannot map templates on {self._identity!r} after dispatch has started."
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        return f"<MessageMapper {self._identity!r} templates={len(self._templates)}>"
