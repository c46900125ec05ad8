from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how ledger columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_from(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)
