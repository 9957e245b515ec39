"""Dashboard period windows."""

from __future__ import annotations

import datetime as dt

from platito.models import TimeWindow, ensure_enum


def period_bounds(
    time_window: TimeWindow | str,
    offset: int = 0,
    today: dt.date | None = None,
) -> tuple[dt.date, dt.date]:
    """Return the ``[start, end)`` dates of a period.

    ``offset`` counts periods back from the one containing ``today``;
    weeks start on Monday.
    """
    window = ensure_enum(TimeWindow, time_window, "Time window")
    today = today or dt.date.today()

    if window is TimeWindow.DAY:
        start = today - dt.timedelta(days=offset)
        return start, start + dt.timedelta(days=1)

    if window is TimeWindow.WEEK:
        start = today - dt.timedelta(days=today.weekday() + 7 * offset)
        return start, start + dt.timedelta(days=7)

    if window is TimeWindow.MONTH:
        month_index = today.year * 12 + (today.month - 1) - offset
        start = dt.date(month_index // 12, month_index % 12 + 1, 1)
        month_index += 1
        end = dt.date(month_index // 12, month_index % 12 + 1, 1)
        return start, end

    start = dt.date(today.year - offset, 1, 1)
    return start, dt.date(today.year - offset + 1, 1, 1)
