# src/credfeed/store/base.py

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional, Type, TypeVar, Union

from credfeed.exceptions import NotFound
from credfeed.model.schema import Record, RecordKind, Relation, record_type

R = TypeVar("R", bound=Record)


class RecordStore(ABC):
    """
    Persistence boundary for credfeed.

    Holds two things: records keyed by (kind, id), and a reference index
    mapping (relation, parent id) to an ordered set of child ids. The
    reference index is the only place parent/child back-references live.

    Each method is atomic for the single record or reference it touches;
    multi-record operations built on top are not.
    """

    # Records

    @abstractmethod
    def put(self, record: Record) -> Record:
        """Insert or replace a record."""

    @abstractmethod
    def get(self, kind: RecordKind, record_id: str) -> Optional[Record]:
        """Return the record or None."""

    @abstractmethod
    def find(self, kind: RecordKind, **equals: Any) -> List[Record]:
        """Return records of ``kind`` whose fields equal every keyword given."""

    @abstractmethod
    def all(self, kind: RecordKind) -> List[Record]:
        pass

    @abstractmethod
    def delete(self, kind: RecordKind, record_id: str) -> bool:
        """Delete a record. Absent ids are a no-op returning False."""

    # Reference index

    @abstractmethod
    def add_ref(self, relation: Relation, parent_id: str, child_id: str) -> None:
        """Add child to parent's set; re-adding an existing child is a no-op."""

    @abstractmethod
    def remove_ref(self, relation: Relation, parent_id: str, child_id: str) -> bool:
        pass

    @abstractmethod
    def refs(self, relation: Relation, parent_id: str) -> List[str]:
        """Child ids in insertion order."""

    @abstractmethod
    def drop_refs(self, record_id: str) -> int:
        """Remove every reference where ``record_id`` is parent or child."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Helpers shared by all backends

    @staticmethod
    def check_fields(kind: RecordKind, fields: Iterable[str]) -> None:
        """Raise ValueError for any name that is not a field of ``kind``."""
        model_fields = record_type(kind).model_fields
        for field in fields:
            if field not in model_fields:
                raise ValueError(f"{RecordKind(kind).value} has no field {field!r}")

    def require(self, kind: Union[RecordKind, str, Type[R]], record_id: Optional[str]) -> Any:
        """Return the record or raise NotFound."""
        kind = kind.kind if isinstance(kind, type) else RecordKind(kind)
        record = self.get(kind, record_id) if record_id else None
        if record is None:
            raise NotFound(kind.value, str(record_id))
        return record

    def exists(self, kind: RecordKind, record_id: str) -> bool:
        return self.get(kind, record_id) is not None
