"""msgmap — text-command routing for message-driven chat services.

Turns command templates such as ``"karma for :key"`` into compiled
matchers, extracts validated parameters from incoming lines, checks
authorization, and calls the matching handler.

Basic usage::

    from msgmap import AllowAll, MessageMapper, TextMessage

    class Karma:
        name = "karma"

        def karma(self, message, params):
            print(params["key"])

    plugin = Karma()
    mapper = MessageMapper(plugin, AllowAll())
    mapper.map("karma for :key")
    mapper.handle(TextMessage("karma for bob"))  # prints "bob"
"""

__version__ = "0.1.0-dev"
__all__ = [
    "AllowAll",
    "AuthOracle",
    "CollectorError",
    "ConfigurationError",
    "MapperConfig",
    "MatchResult",
    "Message",
    "MessageMapper",
    "MessageTemplate",
    "MsgmapError",
    "MultiWord",
    "PermissionTable",
    "TemplateError",
    "TextMessage",
    "compile_template",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import msgmap`` fast while providing a clean top-level API.
    """
    if name == "MessageMapper":
        from msgmap.routing.mapper import MessageMapper

        return MessageMapper

    if name == "compile_template":
        from msgmap.routing.compiler import compile_template

        return compile_template

    if name in ("MatchResult", "MessageTemplate"):
        from msgmap.routing import template as _template

        return getattr(_template, name)

    if name == "MultiWord":
        from msgmap.routing.params import MultiWord

        return MultiWord

    if name == "MapperConfig":
        from msgmap.config import MapperConfig

        return MapperConfig

    if name in ("Message", "TextMessage"):
        from msgmap import message as _message

        return getattr(_message, name)

    if name in ("AllowAll", "AuthOracle", "PermissionTable"):
        from msgmap import auth as _auth

        return getattr(_auth, name)

    if name in ("CollectorError", "ConfigurationError", "MsgmapError", "TemplateError"):
        from msgmap import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
