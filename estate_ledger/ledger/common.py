"""Clock and identifier helpers shared by the ledger services."""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utcnow() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Default record identifier: random UUID4 hex."""
    return uuid.uuid4().hex


def entity_path(entity_id: str, collection: str, record_id: str) -> str:
    """Hierarchical path of a record, e.g. ``entities/e1/charges/c1``."""
    return f"entities/{entity_id}/{collection}/{record_id}"
