"""Kafka sink for streaming ledger records and audit events."""

import json
import logging
import time
from dataclasses import dataclass, is_dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from estate_ledger.config import KafkaConfig
from estate_ledger.exceptions import SinkError
from estate_ledger.models import AuditEvent
from estate_ledger.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    start_time: float | None = None
    end_time: float | None = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0

    @property
    def throughput(self) -> float:
        """Calculate events per second achieved."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        duration = self.end_time - self.start_time
        return self.sent / duration if duration > 0 else 0.0


class KafkaSink:
    """Output ledger data to Kafka topics as JSON.

    Audit events go to ``KafkaConfig.audit_topic`` keyed by owning entity, so
    every event of one entity lands on the same partition in order.
    """

    # Topic to key field mapping
    KEY_FIELDS = {
        "ledger.charges": "lease_id",
        "ledger.payments": "lease_id",
        "ledger.mortgages": "entity_id",
        "ledger.mortgage-payments": "mortgage_id",
        "ledger.alerts": "entity_id",
    }

    def __init__(self, config: KafkaConfig | str, producer: Producer | None = None) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        producer : Producer | None
            Pre-built producer (mainly for tests).
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = producer if producer is not None else Producer(config.to_dict())
        self.stats = ProducerStats()

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def _get_key(self, topic: str, record: Any) -> str | None:
        """Extract message key from record based on topic."""
        key_field = self.KEY_FIELDS.get(topic)
        if not key_field:
            return None

        if is_dataclass(record):
            return getattr(record, key_field, None)
        elif isinstance(record, dict):
            return record.get(key_field)
        return None

    @staticmethod
    def topic_for(entity_type: str) -> str:
        """Map an entity type to its topic (``mortgage_payments`` -> ``ledger.mortgage-payments``)."""
        return "ledger." + entity_type.replace("_", "-")

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Send a single record to a Kafka topic."""
        value = json.dumps(to_dict(record), ensure_ascii=False, default=str).encode("utf-8")

        if key is None:
            key = self._get_key(topic, record)

        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as exc:
            self.stats.failed += 1
            raise SinkError(f"Failed to produce to {topic}: {exc}") from exc
        self.stats.sent += 1
        self.producer.poll(0)

    def write_event(self, event: AuditEvent) -> None:
        """Publish an audit event to the audit topic."""
        self.send(self.config.audit_topic, event, key=event.entity_id)

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to the entity type's topic."""
        topic = self.topic_for(entity_type)
        logger.info("Writing batch to %s: %d records", topic, len(records))

        self.stats.start_time = self.stats.start_time or time.time()
        for record in records:
            self.send(topic, record)

        self.flush()
        self.stats.end_time = time.time()
        logger.info("Batch complete: sent=%d, delivered=%d, failed=%d",
                    self.stats.sent, self.stats.delivered, self.stats.failed)

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        remaining = self.producer.flush(timeout)
        if remaining:
            logger.warning("%d messages still queued after flush", remaining)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
