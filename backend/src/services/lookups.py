"""
GUID lookups shared by the roster services.

A malformed GUID, a GUID of another entity type and an unknown GUID all
surface as NotFoundError of the requested entity.
"""

from typing import Type, TypeVar

from sqlalchemy.orm import Session

from backend.src.services.exceptions import NotFoundError
from backend.src.services.guid import GuidService


ModelT = TypeVar("ModelT")


def get_by_guid(
    db: Session, model: Type[ModelT], guid: str, refresh: bool = False
) -> ModelT:
    """
    Load an entity by GUID.

    Args:
        db: SQLAlchemy session
        model: GuidMixin model class
        guid: External identifier
        refresh: Overwrite identity-map state with the database row

    Raises:
        NotFoundError: If the GUID is invalid or no row matches
    """
    if not GuidService.validate_guid(guid, model.GUID_PREFIX):
        raise NotFoundError(model.__name__, guid)

    try:
        uuid_value = model.parse_guid(guid)
    except ValueError:
        raise NotFoundError(model.__name__, guid)

    query = db.query(model).filter(model.uuid == uuid_value)
    if refresh:
        query = query.populate_existing()

    entity = query.first()
    if entity is None:
        raise NotFoundError(model.__name__, guid)
    return entity
