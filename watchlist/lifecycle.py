# watchlist/lifecycle.py
"""
Status state machine for shows.

Any status may be written directly (PATCH). The completed_at rule is the same
for every write:
  completed -> stamped with the current time (again on re-completion)
  watching  -> cleared
  planned   -> left as it was, so a rewatched show keeps its last completion
"""
import calendar
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from watchlist.models import Show, STATUSES, utcnow

# action name -> (required current status, new status)
ACTIONS: Dict[str, Tuple[str, str]] = {
    "mark_completed": ("watching", "completed"),
    "start_watching": ("planned", "watching"),
    "rewatch": ("completed", "planned"),
}

COMPLETED_WINDOWS = ("all", "30days", "3months", "year")

class TransitionError(ValueError):
    pass

def apply_status(show: Show, new_status: str, clock: Callable[[], datetime] = utcnow) -> Show:
    """Set show.status and derive completed_at. Mutates and returns the show."""
    if not isinstance(new_status, str) or new_status not in STATUSES:
        raise TransitionError(f"invalid status '{new_status}'")
    show.status = new_status
    if new_status == "completed":
        show.completed_at = clock()
    elif new_status == "watching":
        show.completed_at = None
    return show

def apply_action(show: Show, action: str, clock: Callable[[], datetime] = utcnow) -> Show:
    if action not in ACTIONS:
        raise TransitionError(f"unknown action '{action}'")
    source, target = ACTIONS[action]
    if show.status != source:
        raise TransitionError(f"cannot {action} a show that is {show.status}")
    return apply_status(show, target, clock)

def available_action(status: str) -> Optional[str]:
    """The single action offered for a show in the given status."""
    for name, (source, _) in ACTIONS.items():
        if source == status:
            return name
    return None

def _months_ago(ts: datetime, months: int) -> datetime:
    month_index = ts.month - 1 - months
    year = ts.year + month_index // 12
    month = month_index % 12 + 1
    day = min(ts.day, calendar.monthrange(year, month)[1])
    return ts.replace(year=year, month=month, day=day)

def window_start(window: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest completed_at kept by a window; None means no limit."""
    now = now or utcnow()
    if window == "all":
        return None
    if window == "30days":
        return now - timedelta(days=30)
    if window == "3months":
        return _months_ago(now, 3)
    if window == "year":
        return _months_ago(now, 12)
    raise TransitionError(f"invalid completed window '{window}'")

def completed_within(shows: Iterable[Show], window: str, now: Optional[datetime] = None) -> List[Show]:
    start = window_start(window, now)
    if start is None:
        return list(shows)
    return [s for s in shows
            if s.status == "completed" and s.completed_at is not None and s.completed_at >= start]
