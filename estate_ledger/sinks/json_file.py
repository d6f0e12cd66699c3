"""JSON file sink for exporting ledger data to files."""

import json
import logging
import threading
from pathlib import Path
from typing import Any

from estate_ledger.exceptions import SinkError
from estate_ledger.models import AuditEvent
from estate_ledger.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Output records to JSON files and audit events to a JSON Lines file."""

    AUDIT_FILENAME = "audit.jsonl"

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print JSON batch output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}
        self._audit_lock = threading.Lock()

    @property
    def audit_path(self) -> Path:
        return self.output_dir / self.AUDIT_FILENAME

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to ``<entity_type>.json``."""
        file_path = self.output_dir / f"{entity_type}.json"

        data = [to_dict(record) for record in records]

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                if self.pretty:
                    json.dump(data, f, indent=2, ensure_ascii=False, default=str)
                else:
                    json.dump(data, f, ensure_ascii=False, default=str)
        except OSError as exc:
            raise SinkError(f"Failed to write {file_path}: {exc}") from exc

        self._counts[entity_type] = len(records)

    def write_event(self, event: AuditEvent) -> None:
        """Append an audit event to the JSON Lines audit file."""
        line = json.dumps(to_dict(event), ensure_ascii=False, default=str)
        try:
            with self._audit_lock, open(self.audit_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as exc:
            raise SinkError(f"Failed to append audit event {event.event_id}: {exc}") from exc

        self._counts["audit_events"] = self._counts.get("audit_events", 0) + 1

    def close(self) -> None:
        """Log summary."""
        logger.info("JSON files written to: %s", self.output_dir)
        for entity_type, count in self._counts.items():
            logger.info("  %s: %d records", entity_type, count)
