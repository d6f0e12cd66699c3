"""PostgreSQL sink for the audit trail and ledger snapshots."""

import json
import logging
from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from estate_ledger.config import PostgresConfig
from estate_ledger.exceptions import SinkError
from estate_ledger.models import AuditEvent
from estate_ledger.sinks.serialization import to_dict

logger = logging.getLogger(__name__)

RECORDS_TABLE = "ledger_records"


class PostgresSink:
    """Persist audit events and ledger records to PostgreSQL.

    Audit events land in a typed ``audit_logs`` table. Ledger records of any
    type are upserted into ``ledger_records`` as JSONB documents keyed by
    ``(entity_type, record_id)``.
    """

    def __init__(
        self,
        config: PostgresConfig | str,
        connection: psycopg.Connection | None = None,
    ) -> None:
        """Initialize PostgreSQL sink.

        Parameters
        ----------
        config : PostgresConfig | str
            Connection configuration or a connection string.
        connection : psycopg.Connection | None
            Existing connection to use instead of opening one.
        """
        if isinstance(config, str):
            self.connection_string = config
            self.audit_table = PostgresConfig.audit_table
        else:
            self.connection_string = config.connection_string
            self.audit_table = config.audit_table

        if connection is None:
            try:
                connection = psycopg.connect(self.connection_string)
            except psycopg.Error as exc:
                raise SinkError(f"Could not connect to PostgreSQL: {exc}") from exc
        self.conn = connection
        self._counts: dict[str, int] = {}

    def create_tables(self) -> None:
        """Create the audit and record tables if missing."""
        statements = [
            f"""
            CREATE TABLE IF NOT EXISTS {self.audit_table} (
                event_id TEXT PRIMARY KEY,
                entity_id TEXT NOT NULL,
                actor_id TEXT NOT NULL,
                action TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                target_id TEXT NOT NULL,
                entity_path TEXT NOT NULL,
                changes JSONB NOT NULL DEFAULT '{{}}',
                created_at TIMESTAMPTZ
            )
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {RECORDS_TABLE} (
                entity_type TEXT NOT NULL,
                record_id TEXT NOT NULL,
                entity_id TEXT,
                data JSONB NOT NULL,
                PRIMARY KEY (entity_type, record_id)
            )
            """,
        ]
        self._execute(statements)

    def truncate_tables(self) -> None:
        """Remove all rows from the sink's tables."""
        self._execute([f"TRUNCATE {self.audit_table}, {RECORDS_TABLE}"])

    def _execute(self, statements: list[str]) -> None:
        try:
            with self.conn.cursor() as cur:
                for sql in statements:
                    cur.execute(sql)
            self.conn.commit()
        except psycopg.Error as exc:
            self.conn.rollback()
            raise SinkError(f"PostgreSQL statement failed: {exc}") from exc

    def write_event(self, event: AuditEvent) -> None:
        """Insert one audit event."""
        data = to_dict(event)
        sql = (
            f"INSERT INTO {self.audit_table} "
            "(event_id, entity_id, actor_id, action, entity_type, target_id, entity_path, changes, created_at) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (event_id) DO NOTHING"
        )
        params = (
            event.event_id,
            event.entity_id,
            event.actor_id,
            data["action"],
            event.entity_type,
            event.target_id,
            event.entity_path,
            Jsonb(data["changes"]),
            event.created_at,
        )
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
            self.conn.commit()
        except psycopg.Error as exc:
            self.conn.rollback()
            raise SinkError(f"Failed to insert audit event {event.event_id}: {exc}") from exc

        self._counts["audit_events"] = self._counts.get("audit_events", 0) + 1

    def write_batch(self, entity_type: str, records: list[Any], use_copy: bool = False) -> None:
        """Write ledger records as JSONB documents.

        Parameters
        ----------
        entity_type : str
            Record type, e.g. ``charges``.
        records : list[Any]
            Dataclass records; the first field is taken as the record id.
        use_copy : bool
            Use the COPY protocol instead of an upsert. Faster, but fails on
            records that already exist.
        """
        if not records:
            return

        rows = []
        for record in records:
            data = to_dict(record)
            record_id = str(next(iter(data.values())))
            rows.append((entity_type, record_id, data.get("entity_id"), data))

        try:
            with self.conn.cursor() as cur:
                if use_copy:
                    with cur.copy(
                        f"COPY {RECORDS_TABLE} (entity_type, record_id, entity_id, data) FROM STDIN"
                    ) as copy:
                        for entity, record_id, entity_id, data in rows:
                            copy.write_row((entity, record_id, entity_id, json.dumps(data, default=str)))
                else:
                    cur.executemany(
                        f"INSERT INTO {RECORDS_TABLE} (entity_type, record_id, entity_id, data) "
                        "VALUES (%s, %s, %s, %s) "
                        "ON CONFLICT (entity_type, record_id) DO UPDATE SET data = EXCLUDED.data",
                        [(entity, record_id, entity_id, Jsonb(data)) for entity, record_id, entity_id, data in rows],
                    )
            self.conn.commit()
        except psycopg.Error as exc:
            self.conn.rollback()
            raise SinkError(f"Failed to write {entity_type}: {exc}") from exc

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(records)
        logger.info("Wrote %d %s rows to PostgreSQL", len(records), entity_type)

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()
        logger.info("PostgreSQL sink closed: %s", self._counts)
