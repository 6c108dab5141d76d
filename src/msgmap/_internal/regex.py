"""Pattern source helpers for embedding requirement patterns.

A requirement pattern is spliced into the pattern of a whole template, so
its own capturing groups must become non-capturing (the template relies on
group N being parameter N) and its ``^``/``$`` anchors must go.
"""

import re

# Inline flag letters that survive being spliced into a larger pattern
_SCOPED_FLAGS: tuple[tuple[re.RegexFlag, str], ...] = (
    (re.IGNORECASE, "i"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.VERBOSE, "x"),
    (re.ASCII, "a"),
)

# Leading "(?i)"-style groups; their flags are already in Pattern.flags
_GLOBAL_FLAGS_RE = re.compile(r"^(?:\(\?[aiLmsux]+\))+")


def has_captures(pattern: re.Pattern[str]) -> bool:
    """True if *pattern* defines at least one capturing group."""
    return pattern.groups > 0


def remove_captures(source: str) -> str:
    """Rewrite every capturing group in *source* as a non-capturing one.

    Both ``(...)`` and named ``(?P<name>...)`` groups are converted.
    Escaped parentheses and parentheses inside character classes are
    left alone.
    """
    out: list[str] = []
    i = 0
    in_class = False
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\\":
            out.append(source[i : i + 2])
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
            out.append(ch)
            i += 1
            continue
        if ch == "[":
            in_class = True
            out.append(ch)
            i += 1
            # a leading "]" (or "^]") is a literal member of the class
            if source.startswith("^", i):
                out.append("^")
                i += 1
            if source.startswith("]", i):
                out.append("]")
                i += 1
            continue
        if ch == "(":
            if source.startswith("?P<", i + 1):
                end = source.index(">", i)
                out.append("(?:")
                i = end + 1
                continue
            if not source.startswith("?", i + 1):
                out.append("(?:")
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def strip_anchors(source: str) -> str:
    """Drop one leading ``^`` and one unescaped trailing ``$``."""
    if source.startswith("^"):
        source = source[1:]
    if source.endswith("$") and not _escaped_at(source, len(source) - 1):
        source = source[:-1]
    return source


def embeddable(pattern: re.Pattern[str]) -> str:
    """Return *pattern* as a capture-free, unanchored fragment.

    Inline flags the pattern was compiled with are kept as a scoped group
    so ``re.compile(r"yes|no", re.I)`` still matches ``"YES"`` once spliced.
    Leading global flag groups such as ``(?i)`` are folded into that group.
    """
    source = _GLOBAL_FLAGS_RE.sub("", remove_captures(pattern.pattern), count=1)
    source = strip_anchors(source)
    letters = "".join(letter for flag, letter in _SCOPED_FLAGS if pattern.flags & flag)
    if letters:
        return f"(?{letters}:{source})"
    return source


def _escaped_at(source: str, index: int) -> bool:
    backslashes = 0
    index -= 1
    while index >= 0 and source[index] == "\\":
        backslashes += 1
        index -= 1
    return backslashes % 2 == 1
