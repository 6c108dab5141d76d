"""Mapper import resolution — resolves ``"module:attribute"`` strings to mappers.

Shared utility used by ``msgmap routes`` and ``msgmap check`` to locate a
MessageMapper from a user-supplied import string.
"""

import importlib

from msgmap.routing.mapper import MessageMapper


def resolve_mapper(import_string: str) -> MessageMapper:
    """Resolve an import string to a MessageMapper instance.

    Accepts ``"module:attribute"`` format.  When the attribute portion
    is omitted, defaults to ``"mapper"`` (e.g. ``"karma"`` resolves to
    ``karma.mapper``).

    The attribute may also be a dispatch target exposing a ``mapper``
    attribute, or a factory function returning either.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a MessageMapper.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "mapper"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    # Support factory functions - call them if they're not already a mapper
    if callable(obj) and not isinstance(obj, (MessageMapper, type)):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, MessageMapper):
        obj = getattr(obj, "mapper", obj)

    if not isinstance(obj, MessageMapper):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a msgmap.MessageMapper instance"
        raise TypeError(msg)

    return obj
