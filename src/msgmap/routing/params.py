"""Template parameters, collectors, and multi-word values.

A ``Parameter`` describes one ``:name`` or ``*name`` slot of a template.
Its ``collector`` optionally narrows the matched text to one captured
group of a requirement pattern::

    map("seen :nick", requirements={"nick": re.compile(r"^<?(\\w+)>?$")})
    # "seen <bob>" -> {"nick": "bob"}
"""

import logging
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from msgmap._internal.regex import has_captures
from msgmap._internal.types import Requirement
from msgmap.errors import CollectorError

logger = logging.getLogger("msgmap.template")


@dataclass(frozen=True, slots=True)
class Collector:
    """Picks one group out of a match of ``pattern``.

    ``index=None`` selects the first captured group that participated.
    """

    pattern: re.Pattern[str]
    index: int | None = None

    def select(self, value: str) -> str | None:
        match = self.pattern.search(value)
        if match is None:
            return None
        if self.index is not None:
            return match.group(self.index)
        return next((group for group in match.groups() if group is not None), None)


def make_collector(rule: Requirement) -> Collector | None:
    """Build the collector for a requirement rule.

    Accepted shapes:

    - ``re.Pattern`` with captures: collector using the first captured group.
      Without captures it is only a requirement, and ``None`` is returned.
    - ``str``: a literal requirement, never a collector.
    - ``(pattern, index)``: explicit group index (``index`` may be ``None``).
    - ``{"regexp": pattern, "index": index}``: same, keyed.

    Raises ``CollectorError`` for any other shape.
    """
    if rule is None or isinstance(rule, str):
        return None

    if isinstance(rule, re.Pattern):
        if not has_captures(rule):
            return None
        return Collector(rule)

    if isinstance(rule, Mapping):
        if "regexp" not in rule:
            msg = f"Collector {rule!r} doesn't have a 'regexp' key"
            raise CollectorError(msg)
        pattern = rule["regexp"]
        index = rule.get("index")
    elif isinstance(rule, Sequence):
        if not rule:
            msg = "Collector sequence is empty"
            raise CollectorError(msg)
        if len(rule) > 2:
            logger.warning("Collector %r is too long, ignoring extra entries", rule)
        pattern = rule[0]
        index = rule[1] if len(rule) > 1 else None
    else:
        msg = f"Unsupported requirement {rule!r} of type {type(rule).__name__}"
        raise CollectorError(msg)

    if not isinstance(pattern, re.Pattern):
        msg = f"The regexp of collector {rule!r} isn't a compiled pattern"
        raise CollectorError(msg)
    if index is not None and (isinstance(index, bool) or not isinstance(index, int)):
        msg = f"The index of collector {rule!r} is present but not an integer"
        raise CollectorError(msg)
    if index is None and not has_captures(pattern):
        msg = f"The regexp of collector {rule!r} has no captures and no index"
        raise CollectorError(msg)
    if index is not None and not 0 <= index <= pattern.groups:
        msg = f"The index of collector {rule!r} is out of range for its regexp"
        raise CollectorError(msg)
    return Collector(pattern, index)


@dataclass(frozen=True, slots=True)
class Parameter:
    """A named parameter slot of a template.

    ``multi`` parameters (``*name``) absorb the rest of the message.
    ``optional`` parameters have a default or sit inside ``[...]``.
    """

    name: str
    multi: bool = False
    optional: bool = False
    default: Any = None
    collector: Collector | None = None

    def collect(self, value: str) -> Any:
        """Turn the matched text into the parameter value."""
        if self.collector is None:
            return value
        selected = self.collector.select(value)
        if selected is None:
            logger.warning(
                "Collector %s for %r selected nothing from %r",
                self.collector.pattern.pattern,
                self.name,
                value,
            )
        return selected

    def __repr__(self) -> str:
        kind = "multi" if self.multi else "single"
        need = "optional" if self.optional else "needed"
        extra = ""
        if self.collector is not None:
            extra = f" regexp={self.collector.pattern.pattern} index={self.collector.index}"
        return f"<Parameter {self.name} {kind} {need}{extra}>"


@dataclass(frozen=True, slots=True)
class MultiWord:
    """The value of a ``*name`` parameter.

    ``words`` is the whitespace-split text, ``text`` the original
    contiguous substring. ``str()`` gives back ``text``::

        value = params["rest"]
        value.words   # ("a", "b", "c")
        str(value)    # "a b c"
    """

    words: tuple[str, ...]
    text: str

    @classmethod
    def from_text(cls, text: str) -> "MultiWord":
        return cls(words=tuple(text.split()), text=text)

    @classmethod
    def from_default(cls, default: Any, name: str = "") -> "MultiWord":
        """Build the value of an absent ``*name`` parameter from its default."""
        if isinstance(default, str):
            return cls(words=tuple(default.split()), text=default)
        if default is None or default is False:
            return cls(words=(), text="")
        if isinstance(default, (list, tuple)):
            words = tuple(str(word) for word in default)
            return cls(words=words, text=" ".join(words))
        logger.warning("Unmanageable default %r detected for *%s, using []", default, name)
        return cls(words=(), text="")

    def __str__(self) -> str:
        return self.text

    def __iter__(self) -> Iterator[str]:
        return iter(self.words)

    def __len__(self) -> int:
        return len(self.words)

    def __getitem__(self, index: int) -> str:
        return self.words[index]
