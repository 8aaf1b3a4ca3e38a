"""Content identifier generation and validation.

ID format: ``<type:2>-<base62_ts:4><base62_rand:4>`` (11 characters).

The timestamp component is microseconds since the epoch modulo 62**4,
the random component is four cryptographically random base62 characters.
Identifiers are minted locally before submission and act as the
idempotency key for the remote service; they are never derived from
message content.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from enum import Enum

BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
_BASE62_MAX = 62**4
_ID_LENGTH = 11


class ContentType(str, Enum):
    """Two-letter content type prefixes."""

    EMAIL = "em"
    MEETING = "mt"
    DOCUMENT = "dc"
    TRANSCRIPT = "tr"
    ATTACHMENT = "at"


class InvalidContentIDError(ValueError):
    """Raised when a string is not a well-formed content ID."""


@dataclass(frozen=True)
class ContentID:
    """A parsed content identifier."""

    type: ContentType
    timestamp: str
    random: str
    raw: str

    def __str__(self) -> str:
        return self.raw


def new_content_id(content_type: ContentType | str = ContentType.EMAIL) -> str:
    """Mint a new content ID for *content_type*.

    Raises :class:`ValueError` for an unknown type prefix.
    """
    prefix = ContentType(content_type).value
    ts = _encode_base62(time.time_ns() // 1000 % _BASE62_MAX)
    rnd = "".join(secrets.choice(BASE62_ALPHABET) for _ in range(4))
    return f"{prefix}-{ts}{rnd}"


def parse_content_id(value: str) -> ContentID:
    """Validate and split *value* into its components."""
    if len(value) != _ID_LENGTH:
        raise InvalidContentIDError(
            f"invalid content ID format: expected {_ID_LENGTH} characters, got {len(value)}"
        )
    if value[2] != "-":
        raise InvalidContentIDError("invalid content ID format: missing dash at position 2")

    try:
        content_type = ContentType(value[:2])
    except ValueError:
        raise InvalidContentIDError(f"invalid content type: {value[:2]!r}") from None

    suffix = value[3:]
    if not _is_base62(suffix):
        raise InvalidContentIDError("invalid content ID format: suffix contains invalid characters")

    return ContentID(type=content_type, timestamp=suffix[:4], random=suffix[4:], raw=value)


def is_valid_content_id(value: str) -> bool:
    try:
        parse_content_id(value)
    except InvalidContentIDError:
        return False
    return True


def content_type_of(value: str) -> ContentType | None:
    """Return the type of a content ID, or ``None`` if it is invalid."""
    try:
        return parse_content_id(value).type
    except InvalidContentIDError:
        return None


def _encode_base62(n: int) -> str:
    chars = []
    for _ in range(4):
        n, rem = divmod(n, 62)
        chars.append(BASE62_ALPHABET[rem])
    return "".join(reversed(chars))


def _is_base62(value: str) -> bool:
    return all(c in BASE62_ALPHABET for c in value)
