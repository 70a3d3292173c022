# src/credfeed/store/snapshot.py

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from credfeed.model.schema import RecordKind, Relation, record_type
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)

# Which record kinds can own references of each relation
_REF_OWNERS = {
    Relation.LIKES: RecordKind.CONTENT,
    Relation.COMMENTS: RecordKind.CONTENT,
    Relation.REPOSTS: RecordKind.CONTENT,
    Relation.FREETS: RecordKind.USER,
    Relation.USER_LIKES: RecordKind.USER,
    Relation.USER_COMMENTS: RecordKind.USER,
    Relation.FOLLOWERS: RecordKind.USER,
    Relation.FOLLOWING: RecordKind.USER,
    Relation.THREAD_ITEMS: RecordKind.THREAD,
}


def dump_snapshot(store: RecordStore) -> Dict[str, Any]:
    """
    Serialize every record and reference in ``store`` to a JSON-ready dict.

    Returns:
        {"records": {kind: [record, ...]}, "refs": [[relation, parent, child], ...]}
    """
    records: Dict[str, List[Dict[str, Any]]] = {}
    for kind in RecordKind:
        rows = store.all(kind)
        if rows:
            records[kind.value] = [r.model_dump(mode="json") for r in rows]

    refs: List[List[str]] = []
    for relation, owner_kind in _REF_OWNERS.items():
        for owner in store.all(owner_kind):
            for child_id in store.refs(relation, owner.id):
                refs.append([relation.value, owner.id, child_id])

    return {"records": records, "refs": refs}


def load_snapshot(store: RecordStore, snapshot: Dict[str, Any]) -> int:
    """
    Populate ``store`` from a snapshot produced by :func:`dump_snapshot`.

    Returns:
        Number of records loaded.
    """
    loaded = 0
    for kind, rows in snapshot.get("records", {}).items():
        model = record_type(kind)
        for row in rows:
            store.put(model.model_validate(row))
            loaded += 1

    for relation, parent_id, child_id in snapshot.get("refs", []):
        store.add_ref(Relation(relation), parent_id, child_id)

    logger.info(f"Loaded {loaded} records and {len(snapshot.get('refs', []))} references")
    return loaded


def read_snapshot_file(store: RecordStore, path: Union[str, Path]) -> int:
    with open(path, "r", encoding="utf-8") as f:
        return load_snapshot(store, json.load(f))


def write_snapshot_file(store: RecordStore, path: Union[str, Path]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dump_snapshot(store), f, indent=2)
    logger.info(f"Snapshot written to {path}")
