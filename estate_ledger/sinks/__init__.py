"""Output sinks for audit events and ledger exports."""

from estate_ledger.sinks.console import ConsoleSink
from estate_ledger.sinks.json_file import JsonFileSink
from estate_ledger.sinks.kafka import KafkaSink
from estate_ledger.sinks.postgres import PostgresSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink", "PostgresSink"]
