"""
RFC 5322 address helpers.

Phone numbers and contact names end up in From/To headers, so they need the
same treatment a mail client gives them: local parts that are not a dot-atom
are quoted, display names that are not a plain phrase are quoted or, when they
contain non-ASCII text, RFC 2047 encoded.
"""

import re
from dataclasses import dataclass
from email.header import Header
from typing import Optional

# RFC 5322 atext, without the dot
_ATEXT = r"A-Za-z0-9!#$%&'*+\-/=?^_`{|}~"

DOT_ATOM_PATTERN = re.compile(rf"^[{_ATEXT}]+(\.[{_ATEXT}]+)*$")
ATOM_PHRASE_PATTERN = re.compile(rf"^[{_ATEXT}]+([ \t]+[{_ATEXT}]+)*$")


def quote(value: str) -> str:
    """Wrap a value in a quoted-string, escaping backslashes and quotes."""
    escaped = re.sub(r'([\\"])', r"\\\1", value)
    return f'"{escaped}"'


def encode_local_part(local_part: str) -> str:
    """
    Encode the local part of an address.

    Examples:
        >>> encode_local_part("+15551234567")
        '+15551234567'
        >>> encode_local_part("555 1234")
        '"555 1234"'
    """
    if DOT_ATOM_PATTERN.match(local_part):
        return local_part
    return quote(local_part)


def encode_display_name(name: str) -> str:
    """
    Encode a display name for use in an address header.

    Plain phrases are returned unchanged, non-ASCII names become an RFC 2047
    encoded word, anything else is quoted.
    """
    if ATOM_PHRASE_PATTERN.match(name):
        return name
    if not name.isascii():
        return Header(name, "utf-8").encode()
    return quote(name)


@dataclass(frozen=True)
class EmailAddress:
    """An addr-spec with an optional display name."""

    address: str
    display_name: Optional[str] = None

    def __str__(self) -> str:
        if self.display_name:
            return f"{encode_display_name(self.display_name)} <{self.address}>"
        return self.address
