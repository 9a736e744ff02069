"""Column default helpers shared by the ORM models."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """Primary keys are UUID4 strings."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timezone-aware current time for created_at/updated_at columns."""
    return datetime.now(timezone.utc)
