"""Authorization path derivation.

Every template is gated by one hierarchical key such as ``karma::for``.
The key starts from the dispatch target's identity and takes the first
static word of the template that is not the identity itself. An explicit
override string can reshape it with four directives:

==========  =====================================================
``:x``      merge the template word into the prefix (``karma::for::x``)
``x:``      fold the second template word into the suffix
``!x``      drop the prefix
``x!``      drop the suffix
==========  =====================================================

Examples (identity ``"karma"``)::

    "karma for :key"                        -> "karma::for"
    "karma :key"                            -> "karma"
    "karma set :key", auth_path="edit"      -> "karma::edit::set"
    "karma set :key", auth_path=":edit"     -> "karma::set::edit"
    "karma set :key", auth_path="!edit!"    -> "edit"
"""

from collections.abc import Sequence

from msgmap.errors import TemplateError
from msgmap.routing.template import TemplateItem


def auth_words(identity: str, items: Sequence[TemplateItem]) -> list[str]:
    """Static, required words of a template other than the identity."""
    return [
        item.value
        for item in items
        if not item.is_param and not item.optional and not item.suffix and item.value != identity
    ]


def derive_auth_path(
    identity: str,
    items: Sequence[TemplateItem],
    override: str | None = None,
    separator: str = "::",
) -> str:
    """Compute the authorization path of a template.

    Pure function of its arguments. Raises ``TemplateError`` when an
    override asks for a word the template does not have, or when every
    part ends up dropped.
    """
    words = auth_words(identity, items)
    prefix: str | None = identity
    post: str | None = words[0] if words else None
    extra: str | None = None

    if override is not None:
        extra = override
        if extra.startswith(":"):
            extra = extra[1:]
            if post is None:
                msg = f"Auth path override {override!r} merges a word the template doesn't have"
                raise TemplateError(msg)
            prefix = f"{prefix}{separator}{post}"
            post = None
        if extra.endswith(":"):
            extra = extra[:-1]
            if len(words) > 1:
                post = separator.join(part for part in (post, words[1]) if part)
        if extra.startswith("!"):
            extra = extra[1:]
            prefix = None
        if extra.endswith("!"):
            extra = extra[:-1]
            post = None

    path = separator.join(part for part in (prefix, extra, post) if part)
    if not path:
        msg = f"Auth path override {override!r} leaves an empty authorization path"
        raise TemplateError(msg)
    return path
