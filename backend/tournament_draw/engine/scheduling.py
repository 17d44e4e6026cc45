# backend/tournament_draw/engine/scheduling.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from .models import Match


def schedule_order(matches: Iterable[Match]) -> list[Match]:
    # спочатку ранні раунди; всередині раунду: match_order
    return sorted(matches, key=lambda m: (m.round_number, m.match_order))


def schedule_matches(
    matches: Iterable[Match],
    courts: Sequence[int],
    start: datetime,
    duration_minutes: int,
) -> list[Match]:
    """
    Слотова модель: в одному слоті всі корти зайняті по черзі,
    коли корти закінчились: час зсувається на duration_minutes.
    Два матчі не можуть отримати однакову пару (court, time).
    """
    ordered = schedule_order(matches)
    if not ordered:
        return []
    if not courts:
        raise ValueError("no_available_courts")
    if len(set(courts)) != len(courts):
        raise ValueError("duplicate_courts")
    if duration_minutes <= 0:
        raise ValueError("bad_match_duration")

    step = timedelta(minutes=duration_minutes)
    current_time = start
    court_index = 0
    out: list[Match] = []

    for m in ordered:
        out.append(replace(m, court_number=courts[court_index], scheduled_time=current_time))
        court_index += 1
        if court_index >= len(courts):
            court_index = 0
            current_time = current_time + step

    return out


def next_free_slot(start: datetime, scheduled: Iterable[Match], duration_minutes: int) -> datetime:
    # повторне планування (наступний раунд) стартує після останнього зайнятого слоту
    times = [m.scheduled_time for m in scheduled if m.scheduled_time is not None]
    if not times:
        return start
    return max(start, max(times) + timedelta(minutes=duration_minutes))
