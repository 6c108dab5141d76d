"""Shared type aliases used across msgmap modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Handler bound on a dispatch target — called as handler(message, params)
Handler: TypeAlias = Callable[[Any, dict[str, Any]], Any]

# A requirement as written in a map() call: pattern, literal, pair, or mapping
Requirement: TypeAlias = Any
