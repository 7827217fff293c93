from datetime import datetime, date, time, timezone

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

def utcnow():
    # naive UTC, matches what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)

def iso(value):
    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value

def parse_date(value):
    if not value:
        return None
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()

def parse_datetime(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt

def parse_hhmm(value):
    return datetime.strptime(str(value), "%H:%M").time()

def last_number(code):
    """Trailing serial of a code like ``STU-0042``; 0 when there is none."""
    digits = str(code or "").rsplit("-", 1)[-1]
    return int(digits) if digits.isdigit() else 0
