"""
Document mapping between the public and the storage representation.

Public documents carry their identifier under ``id`` (configurable); MongoDB
stores it under ``_id``. A persistence holds exactly one mapper and applies
it once per document on every write (``to_storage``) and read
(``to_public``) path.

Two strategies are provided:

- :class:`MapDocumentMapper` for dynamic dict documents (key rename)
- :class:`ModelDocumentMapper` for fixed record types (pydantic models or dataclasses)
"""

import copy
import dataclasses
import uuid
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar, Union

from bson import ObjectId
from pydantic import BaseModel

from ..constants import PUBLIC_ID_FIELD, STORAGE_ID_FIELD

T = TypeVar("T")

Identifier = Union[str, int, ObjectId]
"""Supported identifier kinds."""

IdGenerator = Callable[[], Identifier]
"""Callable producing a new unique identifier."""


def uuid_id_generator() -> str:
    """Generate a 32-character hex identifier."""
    return uuid.uuid4().hex


def object_id_generator() -> ObjectId:
    """Generate a BSON ObjectId identifier."""
    return ObjectId()


class DocumentMapper(Protocol[T]):
    """Conversion pair between public items and storage documents."""

    def clone(self, item: T) -> T:
        ...

    def get_id(self, item: T) -> Identifier | None:
        ...

    def set_id(self, item: T, id: Identifier) -> T:
        ...

    def to_storage(self, item: T) -> dict[str, Any]:
        ...

    def to_public(self, document: dict[str, Any]) -> T:
        ...

    def to_storage_partial(self, data: dict[str, Any]) -> dict[str, Any]:
        ...


def _rename(data: dict[str, Any], source: str, target: str) -> dict[str, Any]:
    result = dict(data)
    if source in result:
        result[target] = result.pop(source)
    return result


class MapDocumentMapper:
    """
    Mapper for dict documents: renames ``id`` to ``_id`` and back.

    Example:
        mapper = MapDocumentMapper()
        mapper.to_storage({"id": "1", "key": "a"})   # {"key": "a", "_id": "1"}
        mapper.to_public({"_id": "1", "key": "a"})   # {"key": "a", "id": "1"}
    """

    def __init__(self, id_field: str = PUBLIC_ID_FIELD) -> None:
        self.id_field = id_field

    def clone(self, item: dict[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(dict(item))

    def get_id(self, item: dict[str, Any]) -> Identifier | None:
        return item.get(self.id_field)

    def set_id(self, item: dict[str, Any], id: Identifier) -> dict[str, Any]:
        item[self.id_field] = id
        return item

    def to_storage(self, item: dict[str, Any]) -> dict[str, Any]:
        return _rename(item, self.id_field, STORAGE_ID_FIELD)

    def to_public(self, document: dict[str, Any]) -> dict[str, Any]:
        return _rename(document, STORAGE_ID_FIELD, self.id_field)

    def to_storage_partial(self, data: dict[str, Any]) -> dict[str, Any]:
        return _rename(data, self.id_field, STORAGE_ID_FIELD)


class ModelDocumentMapper(Generic[T]):
    """
    Mapper for fixed record types.

    Pydantic models are dumped with ``model_dump(mode="python")`` so BSON
    native types (datetime, ObjectId) survive, and restored with
    ``model_validate``. Dataclasses use ``dataclasses.asdict`` and are
    rebuilt from their known fields only.

    Raises (on read):
        ValueError: pydantic validation failure (``ValidationError``)
        TypeError: dataclass construction failure
    """

    def __init__(self, model_cls: type[T], id_field: str = PUBLIC_ID_FIELD) -> None:
        if isinstance(model_cls, type) and issubclass(model_cls, BaseModel):
            self._is_pydantic = True
        elif dataclasses.is_dataclass(model_cls):
            self._is_pydantic = False
        else:
            raise TypeError(
                f"{model_cls!r} must be a pydantic model or a dataclass; "
                "use MapDocumentMapper for dict documents"
            )
        self.model_cls = model_cls
        self.id_field = id_field

    def clone(self, item: T) -> T:
        if self._is_pydantic:
            return item.model_copy(deep=True)
        return copy.deepcopy(item)

    def get_id(self, item: T) -> Identifier | None:
        return getattr(item, self.id_field, None)

    def set_id(self, item: T, id: Identifier) -> T:
        if self._is_pydantic:
            return item.model_copy(update={self.id_field: id})
        return dataclasses.replace(item, **{self.id_field: id})

    def to_storage(self, item: T) -> dict[str, Any]:
        if self._is_pydantic:
            data = item.model_dump(mode="python")
        else:
            data = dataclasses.asdict(item)
        return _rename(data, self.id_field, STORAGE_ID_FIELD)

    def to_public(self, document: dict[str, Any]) -> T:
        data = _rename(document, STORAGE_ID_FIELD, self.id_field)
        if self._is_pydantic:
            return self.model_cls.model_validate(data)
        field_names = {f.name for f in dataclasses.fields(self.model_cls)}
        return self.model_cls(**{k: v for k, v in data.items() if k in field_names})

    def to_storage_partial(self, data: dict[str, Any]) -> dict[str, Any]:
        return _rename(data, self.id_field, STORAGE_ID_FIELD)
