"""
Time statistics for work order event logs.

``compute_stats`` is a pure function of the event log: it never raises, never
mutates its input, and returns identical results for identical logs. Logs that
break the Start/Pause/Resume/Stop grammar degrade to partial statistics rather
than failing.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..models.work_order import TimeAction, TimeEvent, TimeStats, as_utc

_ONE_MS = timedelta(milliseconds=1)


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return (end - start) // _ONE_MS


def _ordered(time_entries: Optional[Iterable[TimeEvent]]) -> List[TimeEvent]:
    # Offset-less timestamps count as UTC; entries without a timestamp are skipped
    timed = [
        TimeEvent(action=event.action, timestamp=as_utc(event.timestamp), note=event.note)
        for event in time_entries or []
        if isinstance(getattr(event, "timestamp", None), datetime)
    ]
    return sorted(timed, key=lambda event: event.timestamp)


def compute_stats(time_entries: Optional[Iterable[TimeEvent]]) -> TimeStats:
    """
    Derive effective, total and pause statistics from a time event log.

    Events are considered in timestamp order (stable for equal timestamps);
    timestamps without an offset are read as UTC and entries without a
    timestamp are skipped.
    Anything after the first Stop is ignored. A Pause while a pause is
    already open is ignored. Without a Stop, total time spans the first to
    the last event.

    Args:
        time_entries: The work order's event log

    Returns:
        Freshly built TimeStats; durations in milliseconds
    """
    entries = _ordered(time_entries)
    if not entries:
        return TimeStats()

    first_timestamp = entries[0].timestamp
    last_timestamp = first_timestamp
    effective_time = 0
    total_time: Optional[int] = None
    pause_count = 0
    pause_durations: List[int] = []
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    last_run_start: Optional[datetime] = None
    pause_start: Optional[datetime] = None

    for event in entries:
        timestamp = event.timestamp
        last_timestamp = timestamp

        if event.action == TimeAction.START:
            if start_time is None:
                start_time = timestamp
            if pause_start is None and last_run_start is None:
                last_run_start = timestamp

        elif event.action == TimeAction.PAUSE:
            if pause_start is not None:
                continue
            if last_run_start is not None:
                effective_time += _elapsed_ms(last_run_start, timestamp)
                last_run_start = None
            pause_start = timestamp
            pause_count += 1

        elif event.action == TimeAction.RESUME:
            if pause_start is not None:
                pause_durations.append(_elapsed_ms(pause_start, timestamp))
                pause_start = None
            last_run_start = timestamp

        elif event.action == TimeAction.STOP:
            if pause_start is not None:
                pause_durations.append(_elapsed_ms(pause_start, timestamp))
                pause_start = None
            elif last_run_start is not None:
                effective_time += _elapsed_ms(last_run_start, timestamp)
            last_run_start = None
            end_time = timestamp
            total_time = _elapsed_ms(first_timestamp, timestamp)
            break

    if total_time is None:
        total_time = _elapsed_ms(first_timestamp, last_timestamp)

    average_pause_duration = (
        sum(pause_durations) / len(pause_durations) if pause_durations else 0.0
    )

    return TimeStats(
        effective_time=effective_time,
        total_time=total_time,
        pause_count=pause_count,
        pause_durations=pause_durations,
        average_pause_duration=average_pause_duration,
        start_time=start_time,
        end_time=end_time
    )


def format_duration(duration_ms: int) -> str:
    """Render a millisecond duration as ``HH:MM:SS``."""
    seconds = max(int(duration_ms), 0) // 1000
    hours, remainder = divmod(seconds, 3600)
    minutes, remaining_seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{remaining_seconds:02d}"
