"""
External identifiers for roster entities.

Rows are keyed by integer ids internally; everything that leaves the
service layer (API paths, responses, audit entries) uses a GUID instead:

    {prefix}_{26 lowercase Crockford Base32 characters of a UUIDv7}

e.g. ``slt_01hgw2bbg00000000000000002`` for a Slot. Parsing is
case-insensitive. The prefix says which table the GUID belongs to, so a
Squad GUID passed where a Slot is expected is rejected before any query.
"""

import re
import uuid
from typing import Optional, Tuple

import base32_crockford
from uuid_extensions import uuid7


ENTITY_PREFIXES = {
    "evt": "Event",
    "sqd": "Squad",
    "slt": "Slot",
    "cnd": "CommunicationNode",
    "abs": "Absence",
    "aud": "AuditEntry",
    "usr": "User",
    "cln": "Clan",
}

ENCODED_LENGTH = 26

# Crockford Base32 alphabet without I, L, O, U
GUID_PATTERN = re.compile(
    r"^(%s)_[0-9A-HJKMNP-TV-Z]{%d}$" % ("|".join(ENTITY_PREFIXES), ENCODED_LENGTH),
    re.IGNORECASE,
)


class GuidService:
    """Stateless helpers to mint, format and parse entity GUIDs."""

    @staticmethod
    def generate_uuid() -> uuid.UUID:
        """New time-ordered UUIDv7, so GUID indexes grow append-only."""
        return uuid7()

    @staticmethod
    def encode_uuid(uuid_value: uuid.UUID, prefix: str) -> str:
        """
        Format a UUID (or its 16 raw bytes) as a GUID of the given entity.

        Raises:
            ValueError: If prefix is not a roster entity prefix
        """
        if prefix not in ENTITY_PREFIXES:
            raise ValueError(
                f"Invalid prefix '{prefix}'. Valid prefixes: {', '.join(ENTITY_PREFIXES)}"
            )

        raw = uuid_value if isinstance(uuid_value, bytes) else uuid_value.bytes
        body = base32_crockford.encode(int.from_bytes(raw, "big")).zfill(ENCODED_LENGTH)
        return f"{prefix}_{body.lower()}"

    @classmethod
    def generate_guid(cls, prefix: str) -> str:
        """
        Mint a GUID that no row carries yet.

        Example:
            >>> GuidService.generate_guid("evt")
            'evt_01hgw2bbg...'
        """
        return cls.encode_uuid(cls.generate_uuid(), prefix)

    @staticmethod
    def decode_guid(guid: str) -> Tuple[str, uuid.UUID]:
        """
        Split a GUID into its lowercase prefix and UUID.

        Raises:
            ValueError: If the GUID is empty or not well-formed
        """
        if not guid:
            raise ValueError("GUID cannot be empty")
        if not GUID_PATTERN.match(guid):
            raise ValueError(
                f"Invalid GUID format: {guid}. Expected {{prefix}}_{{26-char base32}}"
            )

        prefix, body = guid.split("_", 1)
        try:
            value = base32_crockford.decode(body.upper())
            return prefix.lower(), uuid.UUID(bytes=value.to_bytes(16, "big"))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid GUID encoding: {e}")

    @staticmethod
    def validate_guid(guid: Optional[str], expected_prefix: Optional[str] = None) -> bool:
        """True if guid is well-formed and, when given, carries expected_prefix."""
        if not guid or not GUID_PATTERN.match(guid):
            return False
        if expected_prefix is None:
            return True
        return guid[:3].lower() == expected_prefix.lower()

    @classmethod
    def parse_guid(cls, guid: str, expected_prefix: str) -> uuid.UUID:
        """
        UUID of a GUID that must belong to the expected entity.

        Raises:
            ValueError: If the GUID is malformed or has another prefix
        """
        if not cls.validate_guid(guid):
            raise ValueError(f"Invalid identifier format: {guid}")

        prefix, value = cls.decode_guid(guid)
        if prefix != expected_prefix.lower():
            raise ValueError(
                f"GUID prefix mismatch. Expected '{expected_prefix}', got '{prefix}'"
            )
        return value
