# src/credfeed/store/graph_db.py

import json
import logging
import time
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase as Neo4jGraphDatabase
from neo4j import Driver, Transaction
from neo4j.exceptions import AuthError, ServiceUnavailable

from credfeed.model.schema import Record, RecordKind, Relation, record_type
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)

_DROP_REFS_QUERY = """
MATCH (r:Ref)
WHERE r.parent_id = $id OR r.child_id = $id
DELETE r
RETURN count(r) AS count
"""


class Neo4jStore(RecordStore):
    """
    Neo4j-backed RecordStore.

    Records are (:Record {kind, id, ...}) nodes. References are
    (:Ref {relation, parent_id, child_id, seq}) nodes ordered by seq, so a
    child id is recorded whether or not it names a stored record.
    """

    def __init__(self, uri: str, username: str, password: str, database: str = "neo4j"):
        """
        Initialize Neo4j connection.

        Args:
            uri: Neo4j URI (e.g., "bolt://localhost:7687")
            username: Database username
            password: Database password
            database: Database name (default: "neo4j")
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self._driver: Optional[Driver] = None
        self._schema_ready = False
        self._ensure_connection()

    @classmethod
    def from_config(cls, config) -> "Neo4jStore":
        """Build from a Neo4jConfig section."""
        return cls(
            uri=config.uri,
            username=config.username,
            password=config.password.get_secret_value(),
            database=config.database,
        )

    def _ensure_connection(self):
        """Establish and validate Neo4j connection."""
        if self._driver is None:
            try:
                self._driver = Neo4jGraphDatabase.driver(
                    self.uri,
                    auth=(self.username, self.password),
                )
                self._driver.verify_connectivity()
                logger.info(f"Connected to Neo4j at {self.uri}")
            except (ServiceUnavailable, AuthError) as e:
                logger.error(f"Failed to connect to Neo4j: {e}")
                raise
        if not self._schema_ready:
            self._create_constraints_and_indexes()
            self._schema_ready = True

    def close(self):
        """Close Neo4j driver connection."""
        if self._driver:
            self._driver.close()
            self._driver = None

    def _create_constraints_and_indexes(self):
        with self._driver.session(database=self.database) as session:
            session.run(
                "CREATE CONSTRAINT record_id_unique IF NOT EXISTS "
                "FOR (n:Record) REQUIRE n.id IS UNIQUE"
            )
            session.run(
                "CREATE INDEX record_kind IF NOT EXISTS "
                "FOR (n:Record) ON (n.kind)"
            )
            session.run(
                "CREATE INDEX ref_parent IF NOT EXISTS "
                "FOR (r:Ref) ON (r.relation, r.parent_id)"
            )
            session.run(
                "CREATE INDEX ref_child IF NOT EXISTS "
                "FOR (r:Ref) ON (r.child_id)"
            )

    def _write(self, tx_fn, *args):
        self._ensure_connection()
        try:
            with self._driver.session(database=self.database) as session:
                return session.execute_write(tx_fn, *args)
        except Exception as e:
            logger.error(f"Neo4j write failed: {e}")
            raise

    def _read(self, tx_fn, *args):
        self._ensure_connection()
        try:
            with self._driver.session(database=self.database) as session:
                return session.execute_read(tx_fn, *args)
        except Exception as e:
            logger.error(f"Neo4j read failed: {e}")
            raise

    # Property conversion

    def _record_to_node_props(self, record: Record) -> Dict[str, Any]:
        """Convert a record to flat Neo4j properties (nested values JSON-encoded)."""
        props = {"kind": record.kind.value}
        for key, value in record.model_dump(mode="json").items():
            if value is None:
                continue
            if isinstance(value, dict) or (
                isinstance(value, list) and any(not isinstance(v, str) for v in value)
            ):
                value = json.dumps(value)
            props[key] = value
        return props

    def _node_props_to_record(self, props: Dict[str, Any]) -> Record:
        props = dict(props)
        kind = props.pop("kind")
        return record_type(kind).model_validate(props)

    # Records

    def put(self, record: Record) -> Record:
        self._write(self._put_tx, self._record_to_node_props(record))
        return record

    @staticmethod
    def _put_tx(tx: Transaction, props: Dict[str, Any]) -> None:
        query = """
        MERGE (n:Record {id: $id})
        SET n = $props
        """
        tx.run(query, {"id": props["id"], "props": props})

    def get(self, kind: RecordKind, record_id: str) -> Optional[Record]:
        rows = self._read(
            self._match_tx,
            "MATCH (n:Record {kind: $kind, id: $id}) RETURN properties(n) AS props",
            {"kind": RecordKind(kind).value, "id": record_id},
        )
        return self._node_props_to_record(rows[0]["props"]) if rows else None

    def find(self, kind: RecordKind, **equals: Any) -> List[Record]:
        kind = RecordKind(kind)
        self.check_fields(kind, equals)
        clauses = []
        params: Dict[str, Any] = {"kind": kind.value}
        for i, (field, value) in enumerate(sorted(equals.items())):
            if value is None:
                clauses.append(f"n.{field} IS NULL")
                continue
            clauses.append(f"n.{field} = $p{i}")
            params[f"p{i}"] = getattr(value, "value", value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"MATCH (n:Record {{kind: $kind}}){where} RETURN properties(n) AS props"
        rows = self._read(self._match_tx, query, params)
        return [self._node_props_to_record(row["props"]) for row in rows]

    def all(self, kind: RecordKind) -> List[Record]:
        return self.find(kind)

    @staticmethod
    def _match_tx(tx: Transaction, query: str, params: Dict[str, Any]) -> List[Dict]:
        result = tx.run(query, params)
        return [record.data() for record in result]

    def delete(self, kind: RecordKind, record_id: str) -> bool:
        count = self._write(self._delete_tx, RecordKind(kind).value, record_id)
        if not count:
            logger.debug(f"Delete of absent {RecordKind(kind).value} {record_id} ignored")
        return bool(count)

    @staticmethod
    def _delete_tx(tx: Transaction, kind: str, record_id: str) -> int:
        query = """
        MATCH (n:Record {kind: $kind, id: $id})
        DETACH DELETE n
        RETURN count(n) AS count
        """
        record = tx.run(query, {"kind": kind, "id": record_id}).single()
        count = record["count"] if record else 0
        if count:
            # The record takes its references with it, as in the memory store
            tx.run(_DROP_REFS_QUERY, {"id": record_id})
        return count

    # Reference index

    def add_ref(self, relation: Relation, parent_id: str, child_id: str) -> None:
        self._write(
            self._add_ref_tx, Relation(relation).value, parent_id, child_id, time.time_ns()
        )

    @staticmethod
    def _add_ref_tx(
        tx: Transaction, relation: str, parent_id: str, child_id: str, seq: int
    ) -> None:
        # Child ids need not be stored records, so refs live on their own nodes
        query = """
        MERGE (r:Ref {relation: $relation, parent_id: $parent_id, child_id: $child_id})
        ON CREATE SET r.seq = $seq
        """
        tx.run(
            query,
            {"relation": relation, "parent_id": parent_id, "child_id": child_id, "seq": seq},
        )

    def remove_ref(self, relation: Relation, parent_id: str, child_id: str) -> bool:
        count = self._write(
            self._count_write_tx,
            """
            MATCH (r:Ref {relation: $relation, parent_id: $parent_id, child_id: $child_id})
            DELETE r
            RETURN count(r) AS count
            """,
            {"relation": Relation(relation).value, "parent_id": parent_id, "child_id": child_id},
        )
        return bool(count)

    def refs(self, relation: Relation, parent_id: str) -> List[str]:
        rows = self._read(
            self._match_tx,
            """
            MATCH (r:Ref {relation: $relation, parent_id: $parent_id})
            RETURN r.child_id AS id
            ORDER BY r.seq
            """,
            {"relation": Relation(relation).value, "parent_id": parent_id},
        )
        return [row["id"] for row in rows]

    def drop_refs(self, record_id: str) -> int:
        return self._write(self._count_write_tx, _DROP_REFS_QUERY, {"id": record_id})

    @staticmethod
    def _count_write_tx(tx: Transaction, query: str, params: Dict[str, Any]) -> int:
        record = tx.run(query, params).single()
        return record["count"] if record else 0
