from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, matches what SQLite hands back for DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)
