#!/usr/bin/env python3
"""Generate a sample ledger and export it.

Runs the rent roll scenario and writes every record type as JSON files
(plus the audit trail as ``audit.jsonl``) to the output directory.
Optionally also publishes to Kafka and PostgreSQL.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from estate_ledger.config import LedgerConfig
from estate_ledger.logging import setup_logging_from_config
from estate_ledger.money import format_cents
from estate_ledger.scenarios import RentRollScenario
from estate_ledger.sinks import JsonFileSink, KafkaSink, PostgresSink

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate a sample property ledger")
    parser.add_argument(
        "--entities",
        type=int,
        default=3,
        help="Number of owning entities (default: 3)",
    )
    parser.add_argument(
        "--properties",
        type=int,
        default=4,
        help="Properties per entity (default: 4)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=6,
        help="Rent periods of history per lease (default: 6)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Reference date YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory (default: OUTPUT_DIR or ./output)",
    )
    parser.add_argument(
        "--kafka",
        action="store_true",
        help="Also publish records and audit events to Kafka",
    )
    parser.add_argument(
        "--postgres",
        action="store_true",
        help="Also write records and audit events to PostgreSQL",
    )
    args = parser.parse_args()

    config = LedgerConfig.from_env()
    setup_logging_from_config(config)

    output_dir = args.output_dir or config.output.json_output_dir
    json_sink = JsonFileSink(output_dir, pretty=config.output.pretty_json)
    sinks: list = [json_sink]

    if args.kafka:
        sinks.append(KafkaSink(config.kafka))
    if args.postgres:
        pg_sink = PostgresSink(config.postgres)
        pg_sink.create_tables()
        sinks.append(pg_sink)

    scenario = RentRollScenario(
        num_entities=args.entities,
        properties_per_entity=args.properties,
        months=args.months,
        reference_date=args.date,
        seed=args.seed,
        config=config,
    )
    for sink in sinks:
        scenario.service.audit.add_sink(sink)

    scenario.generate()
    scenario.export(sinks)

    summary = scenario.get_summary()
    logger.info("=" * 60)
    for key, value in summary.items():
        if key in ("total_billed", "total_collected", "total_outstanding", "overdue_amount",
                   "unapplied_credit", "mortgage_balance"):
            value = format_cents(value)
        logger.info("  %s: %s", key, value)
    logger.info("=" * 60)

    scenario.service.close()


if __name__ == "__main__":
    main()
