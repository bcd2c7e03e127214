"""
GUID column and property shared by every roster model.

Each model declares a three-letter GUID_PREFIX; the mixin adds a unique
``uuid`` column filled with a UUIDv7 on insert and exposes the external
identifier as ``model.guid`` (see backend.src.services.guid).
"""

import uuid as uuid_module
from typing import ClassVar, Optional

from sqlalchemy import Column, LargeBinary, TypeDecorator
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from uuid_extensions import uuid7

from backend.src.services.guid import GuidService


class UUIDType(TypeDecorator):
    """
    UUID stored natively on PostgreSQL and as 16 raw bytes elsewhere.

    Values always come back as uuid.UUID.
    """

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = _as_uuid(value)
        return value if dialect.name == "postgresql" else value.bytes

    def process_result_value(self, value, dialect):
        return None if value is None else _as_uuid(value)


def _as_uuid(value) -> uuid_module.UUID:
    if isinstance(value, uuid_module.UUID):
        return value
    if isinstance(value, bytes):
        return uuid_module.UUID(bytes=value)
    return uuid_module.UUID(str(value))


class GuidMixin:
    """
    Adds ``uuid`` (column) and ``guid`` (property) to a model.

    Usage:
        class Squad(Base, GuidMixin):
            GUID_PREFIX = "sqd"

        squad.guid  # 'sqd_01hgw2bbg...' once flushed
    """

    GUID_PREFIX: ClassVar[str]

    uuid = Column(UUIDType(), nullable=False, unique=True, index=True, default=uuid7)

    @property
    def guid(self) -> Optional[str]:
        """External identifier, None until the row has been flushed."""
        if self.uuid is None:
            return None
        return GuidService.encode_uuid(self.uuid, self.GUID_PREFIX)

    @classmethod
    def parse_guid(cls, guid: str) -> uuid_module.UUID:
        """
        UUID behind a GUID of this model.

        Raises:
            ValueError: If the GUID is malformed or belongs to another model
        """
        return GuidService.parse_guid(guid, cls.GUID_PREFIX)
