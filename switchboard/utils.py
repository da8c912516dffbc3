"""Small text helpers."""

from typing import Optional


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    """Return the singular or plural form of a word for ``count``.

    >>> pluralize(1, "command")
    'command'
    >>> pluralize(3, "command")
    'commands'
    >>> pluralize(2, "entry", "entries")
    'entries'
    """
    if plural is None:
        plural = f"{singular}s"
    return singular if count == 1 else plural
