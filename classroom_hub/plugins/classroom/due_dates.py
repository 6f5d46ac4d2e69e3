"""
Convert Classroom dueDate/dueTime objects into one naive "YYYY-MM-DDTHH:MM:SS" string.
"""
from typing import Any, Dict, Optional

DEFAULT_DUE_HOUR = 23
DEFAULT_DUE_MINUTE = 59


def normalize_due_date(due_date: Optional[Dict[str, Any]], due_time: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """
    Return the canonical due timestamp, or None when there is no usable date.

    A missing time means end of day (23:59:00). Inside a time object, a missing
    hours or minutes field defaults on its own to 23 or 59. Never raises.
    """
    if not due_date:
        return None
    try:
        y = due_date.get("year")
        m = due_date.get("month")
        d = due_date.get("day")
        if y is None or m is None or d is None:
            return None
        date_str = f"{int(y):04d}-{int(m):02d}-{int(d):02d}"

        if due_time:
            h = due_time.get("hours")
            mi = due_time.get("minutes")
            h = DEFAULT_DUE_HOUR if h is None else int(h)
            mi = DEFAULT_DUE_MINUTE if mi is None else int(mi)
        else:
            h, mi = DEFAULT_DUE_HOUR, DEFAULT_DUE_MINUTE
        return f"{date_str}T{h:02d}:{mi:02d}:00"
    except (AttributeError, TypeError, ValueError):
        return None
