"""Configuration management for estate-ledger."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from estate_ledger.exceptions import ConfigurationError


@dataclass
class KafkaConfig:
    """Kafka producer configuration for the audit stream."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    audit_topic: str = "ledger.audit"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "ledger"
    user: str = "postgres"
    password: str = "postgres"
    audit_table: str = "audit_logs"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class AlertConfig:
    """Look-ahead windows and severity thresholds for due-date alerts (days)."""

    lease_expiry_days: int = 60
    lease_critical_days: int = 30
    overdue_critical_days: int = 30
    payment_due_days: int = 5
    payment_due_critical_days: int = 2
    mortgage_due_days: int = 5
    mortgage_critical_days: int = 2

    def __post_init__(self) -> None:
        for name, value in vars(self).items():
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}")


@dataclass
class LedgerConfig:
    """Main configuration for estate-ledger."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    late_fee_grace_days: int = 5
    audit_history_size: int = 1000
    currency: str = "usd"
    log_level: str = "INFO"
    log_format: str = "standard"
    log_file: str | None = None

    def __post_init__(self) -> None:
        if self.audit_history_size < 0:
            raise ConfigurationError(f"audit_history_size must be non-negative, got {self.audit_history_size}")

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        import os

        def _int(name: str, default: int) -> int:
            raw = os.getenv(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            audit_topic=os.getenv("AUDIT_TOPIC", "ledger.audit"),
        )

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_int("POSTGRES_PORT", 5432),
            database=os.getenv("POSTGRES_DB", "ledger"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        alerts = AlertConfig(
            lease_expiry_days=_int("ALERT_LEASE_EXPIRY_DAYS", 60),
            payment_due_days=_int("ALERT_PAYMENT_DUE_DAYS", 5),
            mortgage_due_days=_int("ALERT_MORTGAGE_DUE_DAYS", 5),
        )

        log_format = os.getenv("LOG_FORMAT", "standard")
        if log_format not in ("standard", "json"):
            raise ConfigurationError(f"LOG_FORMAT must be 'standard' or 'json', got {log_format!r}")

        return cls(
            kafka=kafka,
            postgres=postgres,
            output=output,
            alerts=alerts,
            late_fee_grace_days=_int("LATE_FEE_GRACE_DAYS", 5),
            audit_history_size=_int("AUDIT_HISTORY_SIZE", 1000),
            currency=os.getenv("LEDGER_CURRENCY", "usd"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=log_format,
            log_file=os.getenv("LOG_FILE"),
        )
