from datetime import datetime


def now() -> datetime:
    """Current local wall-clock time. Tests replace this to freeze time."""
    return datetime.now()
