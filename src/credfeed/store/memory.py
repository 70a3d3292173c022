# src/credfeed/store/memory.py

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from credfeed.model.schema import Record, RecordKind, Relation
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class InMemoryStore(RecordStore):
    """In-process RecordStore. Records are stored as copies."""

    def __init__(self):
        self._lock = threading.RLock()
        self._records: Dict[RecordKind, Dict[str, Record]] = defaultdict(dict)
        # (relation, parent_id) -> {child_id: None}; dict keeps insertion order
        self._refs: Dict[Tuple[Relation, str], Dict[str, None]] = {}

    def put(self, record: Record) -> Record:
        with self._lock:
            self._records[record.kind][record.id] = record.model_copy(deep=True)
        return record

    def get(self, kind: RecordKind, record_id: str) -> Optional[Record]:
        with self._lock:
            record = self._records[RecordKind(kind)].get(record_id)
            return record.model_copy(deep=True) if record is not None else None

    def find(self, kind: RecordKind, **equals: Any) -> List[Record]:
        self.check_fields(kind, equals)
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in self._records[RecordKind(kind)].values()
                if all(getattr(record, field) == value for field, value in equals.items())
            ]

    def all(self, kind: RecordKind) -> List[Record]:
        return self.find(kind)

    def delete(self, kind: RecordKind, record_id: str) -> bool:
        with self._lock:
            removed = self._records[RecordKind(kind)].pop(record_id, None)
            if removed is not None:
                # Same as a detach-delete: the record takes its references with it
                self.drop_refs(record_id)
        if removed is None:
            logger.debug(f"Delete of absent {RecordKind(kind).value} {record_id} ignored")
            return False
        return True

    def add_ref(self, relation: Relation, parent_id: str, child_id: str) -> None:
        with self._lock:
            self._refs.setdefault((Relation(relation), parent_id), {})[child_id] = None

    def remove_ref(self, relation: Relation, parent_id: str, child_id: str) -> bool:
        with self._lock:
            children = self._refs.get((Relation(relation), parent_id))
            if not children or child_id not in children:
                return False
            del children[child_id]
            if not children:
                del self._refs[(Relation(relation), parent_id)]
            return True

    def refs(self, relation: Relation, parent_id: str) -> List[str]:
        with self._lock:
            return list(self._refs.get((Relation(relation), parent_id), {}))

    def drop_refs(self, record_id: str) -> int:
        dropped = 0
        with self._lock:
            for key in list(self._refs):
                children = self._refs[key]
                if key[1] == record_id:
                    dropped += len(children)
                    del self._refs[key]
                elif record_id in children:
                    del children[record_id]
                    dropped += 1
                    if not children:
                        del self._refs[key]
        return dropped

    def ref_count(self) -> int:
        with self._lock:
            return sum(len(children) for children in self._refs.values())
