"""Default id generator for records and ledger events."""

import uuid


def new_id() -> str:
    """Collision-resistant opaque identifier."""
    return uuid.uuid4().hex
