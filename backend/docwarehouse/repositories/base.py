"""Common lookup helpers for the repositories."""

from typing import Callable, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Primary-key lookups for one mapped class.

    Subclasses set ``model_class`` and, if a missing row deserves a domain
    error, ``not_found_error``.
    """

    model_class: Type[ModelT]
    not_found_error: Callable[[str], Exception] = LookupError

    def __init__(self, db: Session):
        self.db = db

    def get_by_id_optional(self, entity_id: str) -> Optional[ModelT]:
        return self.db.get(self.model_class, entity_id)

    def get_by_id(self, entity_id: str) -> ModelT:
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity
