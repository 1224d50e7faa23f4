"""
Person resolution for message addresses.

Maps a phone-number-like address to the identity used on the person's side
of the envelope and in the threading header.

Resolution Strategy:
    1. Cached record for the exact address string
    2. Directory match -> resolved record (directory id, contact name,
       preferred email)
    3. No match -> unknown record derived from the address alone

A failed directory query counts as "no match". That fallback record is
returned but not cached, so the next message from the same address gets
another chance at the directory.
"""

import threading
from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from sms_backup.convert.cache import PersonCache
from sms_backup.convert.directory import Directory, DirectoryLookupError
from sms_backup.convert.encoding import EmailAddress, encode_local_part
from sms_backup.convert.normalizers import email_domain

logger = logging.getLogger(__name__)

UNKNOWN_NUMBER = "unknown_number"
UNKNOWN_EMAIL = "unknown.email"
UNKNOWN_PERSON = "unknown.person"

GMAIL_DOMAINS = frozenset({"gmail.com", "googlemail.com"})


@dataclass(frozen=True)
class PersonRecord:
    """Resolved identity for one address."""

    stable_id: str
    display_name: str
    canonical_address: EmailAddress


def is_gmail_address(email: str) -> bool:
    """Whether the address is hosted on gmail.com or googlemail.com."""
    return email_domain(email) in GMAIL_DOMAINS


def unknown_email(number: Optional[str]) -> str:
    """
    Placeholder email for a contact without one.

    Examples:
        >>> unknown_email("+15551234567")
        '+15551234567@unknown.email'
        >>> unknown_email(None)
        'unknown_number@unknown.email'
    """
    value = UNKNOWN_NUMBER if number is None else number
    return f"{encode_local_part(value.strip())}@{UNKNOWN_EMAIL}"


def select_email(emails: Iterable[str]) -> Optional[str]:
    """
    Pick the preferred email from a primary-first list.

    The first Gmail address wins; otherwise the first address; None if empty.
    """
    first = None
    for email in emails:
        if first is None:
            first = email
        if is_gmail_address(email):
            return email
    return first


def resolve_canonical_email(directory: Directory, person_id: int, number: Optional[str]) -> str:
    """
    Choose the email address representing a directory contact.

    Args:
        directory: Directory to list the contact's emails from.
        person_id: Directory id of the contact.
        number: The contact's phone number, used for the placeholder.

    Returns:
        The selected address, or a deterministic placeholder.
    """
    if person_id <= 0:
        return unknown_email(number)

    try:
        emails = directory.emails_for(person_id)
    except DirectoryLookupError as e:
        logger.warning(f"Could not list emails for person {person_id}: {e}")
        return unknown_email(number)

    selected = select_email(emails)
    if selected is None:
        return unknown_email(number)
    return selected


def unknown_person(address: str) -> PersonRecord:
    """Build the record for an address with no directory entry."""
    return PersonRecord(
        stable_id=address,
        display_name=address,
        canonical_address=EmailAddress(f"{encode_local_part(address)}@{UNKNOWN_PERSON}"),
    )


class PersonResolver:
    """
    Cache-backed resolver from addresses to PersonRecords.

    Lookup and insert happen under one lock, so a resolver may be shared
    between threads without two lookups racing for the same address.
    """

    def __init__(self, directory: Directory, cache: Optional[PersonCache[PersonRecord]] = None):
        self.directory = directory
        self.cache: PersonCache[PersonRecord] = cache if cache is not None else PersonCache()
        self._lock = threading.Lock()

    def resolve(self, address: str) -> PersonRecord:
        """
        Resolve an address. Never raises for missing or failing directory data.

        Args:
            address: Raw address from the message store.

        Returns:
            The cached, resolved, or unknown PersonRecord.
        """
        with self._lock:
            cached = self.cache.get(address)
            if cached is not None:
                return cached

            try:
                match = self.directory.lookup(address)
            except DirectoryLookupError as e:
                logger.warning(f"Directory lookup failed for {address}: {e}")
                return unknown_person(address)

            if match is None:
                logger.debug(f"Looked up unknown address: {address}")
                record = unknown_person(address)
            else:
                email = resolve_canonical_email(self.directory, match.person_id, match.number)
                name = match.name or address
                record = PersonRecord(
                    stable_id=str(match.person_id),
                    display_name=name,
                    canonical_address=EmailAddress(email, name),
                )

            self.cache.put(address, record)
            return record
