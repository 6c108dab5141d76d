"""msgmap exception hierarchy.

Shared across the template compiler, the mapper, and the CLI so every
module raises and catches the same types.

Only construction-time problems raise. A message that fails to match a
template is not an error: it is reported as a ``MatchResult`` failure.
"""


class MsgmapError(Exception):
    """Base for all msgmap-specific errors."""


class ConfigurationError(MsgmapError):
    """Raised when mapper or template configuration is invalid.

    Always raised during setup (``MessageMapper.map()``), never while a
    message is being dispatched.
    """


class TemplateError(ConfigurationError):
    """Raised when a template string cannot be compiled.

    Covers malformed templates (dynamic or optional first token, duplicate
    parameter names, unbalanced brackets) and authorization paths that
    cannot be derived.
    """

    def __init__(self, message: str, template: str | None = None) -> None:
        if template is not None:
            message = f"{message}: {template!r}"
        super().__init__(message)
        self.template = template


class CollectorError(ConfigurationError):
    """Raised when a requirement or collector rule has an invalid shape."""
