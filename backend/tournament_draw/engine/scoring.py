# backend/tournament_draw/engine/scoring.py

from __future__ import annotations

from typing import Iterable

from .models import MatchHistoryEntry
from .rules import POINTS_LOSS, POINTS_WIN, REVIEW_BONUS


def win_loss(history: Iterable[MatchHistoryEntry]) -> tuple[int, int]:
    # матчі без переможця не рахуються ні як win, ні як loss
    wins = 0
    losses = 0
    for m in history:
        if m.winner_team is None:
            continue
        if m.team == m.winner_team:
            wins += 1
        else:
            losses += 1
    return wins, losses


def player_strength(history: Iterable[MatchHistoryEntry], has_review: bool = False) -> int:
    wins, losses = win_loss(history)
    points = wins * POINTS_WIN + losses * POINTS_LOSS
    if has_review:
        points += REVIEW_BONUS
    return points


def pair_weight(points1: int, points2: int) -> int:
    return int(points1) + int(points2)
