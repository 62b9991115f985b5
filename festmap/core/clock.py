from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current time; services take this as an injectable clock."""
    return datetime.now(tz=timezone.utc)
