"""Tests for sinks and record serialization."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg
import pytest
from confluent_kafka import KafkaException
from psycopg.types.json import Jsonb

from estate_ledger.config import KafkaConfig, PostgresConfig
from estate_ledger.exceptions import SinkError
from estate_ledger.models import (
    Address,
    Allocation,
    AuditAction,
    AuditEvent,
    Charge,
    ChargeType,
    Payment,
    PaymentMethod,
    PaymentMethodType,
    PaymentStatus,
)
from estate_ledger.sinks import ConsoleSink, JsonFileSink, KafkaSink, PostgresSink
from estate_ledger.sinks.kafka import ProducerStats
from estate_ledger.sinks.postgres import RECORDS_TABLE
from estate_ledger.sinks.serialization import serialize_value, to_dict

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def charge() -> Charge:
    """Partially paid rent charge."""
    return Charge(
        charge_id="chg-001",
        entity_id="ent-001",
        lease_id="lease-001",
        period="2024-03",
        charge_type=ChargeType.RENT,
        amount=150000,
        due_date=date(2024, 3, 1),
        paid_amount=50000,
        tenant_ids=("tenant-001",),
        created_at=NOW,
    )


@pytest.fixture
def event() -> AuditEvent:
    """Charge update event."""
    return AuditEvent(
        event_id="evt-001",
        entity_id="ent-001",
        actor_id="user-001",
        action=AuditAction.UPDATE,
        entity_type="charge",
        target_id="chg-001",
        entity_path="entities/ent-001/charges/chg-001",
        changes={"before": {"paid_amount": 0}, "after": {"paid_amount": 50000}},
        created_at=NOW,
    )


class TestSerialization:
    """Tests for to_dict and serialize_value."""

    def test_charge_includes_computed_fields(self, charge: Charge) -> None:
        """Test derived properties are exported with the stored fields."""
        data = to_dict(charge)

        assert data["status"] == "partial"
        assert data["remaining_balance"] == 100000
        assert data["charge_type"] == "rent"
        assert data["due_date"] == "2024-03-01"
        assert data["tenant_ids"] == ["tenant-001"]
        assert data["created_at"] == NOW.isoformat()

    def test_payment_nested(self) -> None:
        payment = Payment(
            payment_id="pay-001",
            entity_id="ent-001",
            lease_id="lease-001",
            payer_id="tenant-001",
            amount=60000,
            method=PaymentMethod(method_type=PaymentMethodType.CHECK, check_number="1042"),
            status=PaymentStatus.SUCCEEDED,
            payment_date=date(2024, 3, 2),
            allocations=(Allocation("chg-001", 50000),),
        )

        data = to_dict(payment)

        assert data["method"]["method_type"] == "check"
        assert data["allocations"] == [{"charge_id": "chg-001", "amount": 50000}]
        assert data["unallocated_amount"] == 10000

    def test_serialize_value(self) -> None:
        assert serialize_value(Decimal("6.5")) == "6.5"
        assert serialize_value(PaymentMethodType.CASH) == "cash"
        assert serialize_value({"when": date(2024, 1, 1)}) == {"when": "2024-01-01"}
        assert serialize_value(Address("1 A St", "Town", "IL", "60000"))["street1"] == "1 A St"

    def test_to_dict_other(self) -> None:
        assert to_dict({"a": Decimal("1.5")}) == {"a": "1.5"}
        assert to_dict(42) == {"value": "42"}


class TestConsoleSink:
    """Tests for ConsoleSink."""

    def test_write_batch(self, charge: Charge, capsys: pytest.CaptureFixture) -> None:
        sink = ConsoleSink(pretty=False)

        sink.write_batch("charges", [charge])
        captured = capsys.readouterr()

        assert "Entity: charges (1 records)" in captured.out
        assert '"status": "partial"' in captured.out

    def test_max_records(self, charge: Charge, capsys: pytest.CaptureFixture) -> None:
        sink = ConsoleSink(max_records=1)

        sink.write_batch("charges", [charge, charge, charge])
        captured = capsys.readouterr()

        assert "... and 2 more records" in captured.out

    def test_write_event_and_close(self, event: AuditEvent, capsys: pytest.CaptureFixture) -> None:
        """Test audit events are printed and counted."""
        sink = ConsoleSink()

        sink.write_event(event)
        sink.close()
        captured = capsys.readouterr()

        assert "[audit] update charge chg-001" in captured.out
        assert "audit_events: 1 records" in captured.out


class TestJsonFileSink:
    """Tests for JsonFileSink."""

    def test_write_batch(self, tmp_path: Path, charge: Charge) -> None:
        sink = JsonFileSink(tmp_path / "out")

        sink.write_batch("charges", [charge])

        data = json.loads((tmp_path / "out" / "charges.json").read_text(encoding="utf-8"))
        assert data[0]["charge_id"] == "chg-001"
        assert data[0]["status"] == "partial"

    def test_write_event_appends(self, tmp_path: Path, event: AuditEvent) -> None:
        """Test audit events are appended one JSON object per line."""
        sink = JsonFileSink(tmp_path)

        sink.write_event(event)
        sink.write_event(event)

        lines = sink.audit_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["action"] == "update"
        assert sink.audit_path.name == "audit.jsonl"

    def test_write_failure(self, tmp_path: Path, charge: Charge) -> None:
        sink = JsonFileSink(tmp_path)
        (tmp_path / "charges.json").mkdir()

        with pytest.raises(SinkError):
            sink.write_batch("charges", [charge])


class TestKafkaSink:
    """Tests for KafkaSink with a mocked producer."""

    def _sink(self) -> tuple[KafkaSink, MagicMock]:
        producer = MagicMock()
        producer.flush.return_value = 0
        return KafkaSink(KafkaConfig(), producer=producer), producer

    @patch("estate_ledger.sinks.kafka.Producer")
    def test_init_with_string(self, mock_producer_class: MagicMock) -> None:
        sink = KafkaSink("kafka:29092")

        assert sink.config.bootstrap_servers == "kafka:29092"
        mock_producer_class.assert_called_once()
        assert mock_producer_class.call_args[0][0]["bootstrap.servers"] == "kafka:29092"

    def test_topic_for(self) -> None:
        assert KafkaSink.topic_for("mortgage_payments") == "ledger.mortgage-payments"
        assert KafkaSink.topic_for("charges") == "ledger.charges"

    def test_write_event(self, event: AuditEvent) -> None:
        """Test audit events go to the audit topic keyed by entity."""
        sink, producer = self._sink()

        sink.write_event(event)

        kwargs = producer.produce.call_args.kwargs
        assert kwargs["topic"] == "ledger.audit"
        assert kwargs["key"] == b"ent-001"
        assert json.loads(kwargs["value"])["target_id"] == "chg-001"
        producer.poll.assert_called_with(0)
        assert sink.stats.sent == 1

    def test_write_batch_keys_by_lease(self, charge: Charge) -> None:
        sink, producer = self._sink()

        sink.write_batch("charges", [charge, charge])

        assert producer.produce.call_count == 2
        assert producer.produce.call_args.kwargs["key"] == b"lease-001"
        producer.flush.assert_called()

    def test_produce_error(self, event: AuditEvent) -> None:
        """Test producer errors surface as SinkError."""
        sink, producer = self._sink()
        producer.produce.side_effect = BufferError("queue full")

        with pytest.raises(SinkError):
            sink.write_event(event)

        assert sink.stats.failed == 1

    def test_kafka_exception(self, event: AuditEvent) -> None:
        sink, producer = self._sink()
        producer.produce.side_effect = KafkaException("broker down")

        with pytest.raises(SinkError):
            sink.write_event(event)

    def test_delivery_callback(self) -> None:
        sink, _ = self._sink()
        msg = MagicMock()
        msg.topic.return_value = "ledger.audit"
        msg.partition.return_value = 0
        msg.offset.return_value = 7

        sink._delivery_callback(None, msg)
        sink._delivery_callback("timeout", msg)

        assert sink.stats.delivered == 1
        assert sink.stats.failed == 1

    def test_producer_stats(self) -> None:
        stats = ProducerStats(sent=10, delivered=8, failed=2, start_time=100.0, end_time=102.0)

        assert stats.success_rate == 0.8
        assert stats.throughput == 5.0
        assert ProducerStats().success_rate == 0.0


class TestPostgresSink:
    """Tests for PostgresSink with a mocked connection."""

    def _sink(self) -> tuple[PostgresSink, MagicMock, MagicMock]:
        conn = MagicMock()
        cursor = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor
        return PostgresSink(PostgresConfig(), connection=conn), conn, cursor

    @patch("estate_ledger.sinks.postgres.psycopg.connect")
    def test_connect_failure(self, mock_connect: MagicMock) -> None:
        mock_connect.side_effect = psycopg.OperationalError("refused")

        with pytest.raises(SinkError, match="Could not connect"):
            PostgresSink("postgresql://u:p@nowhere:5432/ledger")

    def test_create_tables(self) -> None:
        sink, conn, cursor = self._sink()

        sink.create_tables()

        statements = " ".join(call.args[0] for call in cursor.execute.call_args_list)
        assert "CREATE TABLE IF NOT EXISTS audit_logs" in statements
        assert f"CREATE TABLE IF NOT EXISTS {RECORDS_TABLE}" in statements
        conn.commit.assert_called_once()

    def test_write_event(self, event: AuditEvent) -> None:
        """Test audit events are inserted with JSONB changes."""
        sink, conn, cursor = self._sink()

        sink.write_event(event)

        sql, params = cursor.execute.call_args.args
        assert sql.startswith("INSERT INTO audit_logs")
        assert "ON CONFLICT (event_id) DO NOTHING" in sql
        assert params[0] == "evt-001"
        assert params[3] == "update"
        assert isinstance(params[7], Jsonb)
        assert params[7].obj == {"before": {"paid_amount": 0}, "after": {"paid_amount": 50000}}
        conn.commit.assert_called_once()

    def test_write_event_failure(self, event: AuditEvent) -> None:
        """Test database errors roll back and raise SinkError."""
        sink, conn, cursor = self._sink()
        cursor.execute.side_effect = psycopg.OperationalError("connection lost")

        with pytest.raises(SinkError):
            sink.write_event(event)

        conn.rollback.assert_called_once()

    def test_write_batch_upsert(self, charge: Charge) -> None:
        sink, conn, cursor = self._sink()

        sink.write_batch("charges", [charge])

        sql, rows = cursor.executemany.call_args.args
        assert "ON CONFLICT (entity_type, record_id) DO UPDATE" in sql
        assert rows[0][:3] == ("charges", "chg-001", "ent-001")
        assert rows[0][3].obj["status"] == "partial"

    def test_write_batch_copy(self, charge: Charge) -> None:
        sink, conn, cursor = self._sink()
        copy = MagicMock()
        cursor.copy.return_value.__enter__.return_value = copy

        sink.write_batch("charges", [charge, charge], use_copy=True)

        assert copy.write_row.call_count == 2
        row = copy.write_row.call_args.args[0]
        assert row[:3] == ("charges", "chg-001", "ent-001")
        assert json.loads(row[3])["remaining_balance"] == 100000

    def test_write_batch_empty(self) -> None:
        sink, conn, cursor = self._sink()

        sink.write_batch("charges", [])

        cursor.executemany.assert_not_called()
        conn.commit.assert_not_called()

    def test_close(self) -> None:
        sink, conn, _ = self._sink()

        sink.close()

        conn.close.assert_called_once()
