"""Mapper configuration.

MapperConfig is a frozen dataclass — immutable after creation, validated
once, no string-key dict lookups.
"""

from dataclasses import dataclass

from msgmap.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class MapperConfig:
    """Mapper configuration. Immutable after creation.

    Override what you need::

        config = MapperConfig(fallback="help")
    """

    # Method invoked when no template matches; None disables the fallback
    fallback: str | None = "usage"

    # Joins the parts of an authorization path ("karma::for")
    separator: str = "::"

    def __post_init__(self) -> None:
        if not self.separator or self.separator.isspace():
            msg = f"Authorization path separator must be a non-blank string, got {self.separator!r}"
            raise ConfigurationError(msg)
        if self.fallback is not None and not self.fallback.isidentifier():
            msg = f"Fallback must be a method name, got {self.fallback!r}"
            raise ConfigurationError(msg)
