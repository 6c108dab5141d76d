"""Message protocol consumed by the mapper.

The mapper does not care where a message came from. Any object with the
four attributes below works: a chat-protocol message class, a test
double, or the ``TextMessage`` dataclass shipped here.
"""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Message(Protocol):
    """Minimal incoming message.

    ``message`` is the text to route (command prefix already removed),
    ``is_private`` tells direct messages from channel messages,
    ``source`` identifies the sender and ``replyto`` where answers go.
    """

    @property
    def message(self) -> str: ...

    @property
    def is_private(self) -> bool: ...

    @property
    def source(self) -> Any: ...

    @property
    def replyto(self) -> Any: ...


@dataclass(frozen=True, slots=True)
class TextMessage:
    """A plain message built from a string.

    Used by the CLI and handy in tests::

        mapper.handle(TextMessage("karma for bob", source="alice"))
    """

    message: str
    is_private: bool = False
    source: Any = None
    replyto: Any = None
