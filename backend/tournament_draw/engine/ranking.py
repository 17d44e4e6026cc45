# backend/tournament_draw/engine/ranking.py

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .models import PairRanking, Registration
from .rules import REGISTRATION_CONFIRMED


def rank_pairs(registrations: Iterable[Registration]) -> list[PairRanking]:
    """
    Щільний рейтинг 1..N за pair_weight (спадання).
    Рівні ваги зберігають вхідний порядок (порядок реєстрації):
    sorted() стабільний, вторинного ключа немає.
    """
    confirmed = [r for r in registrations if r.status == REGISTRATION_CONFIRMED]
    ordered = sorted(confirmed, key=lambda r: -r.pair_weight)
    return [
        PairRanking(
            registration_id=r.id,
            player1_id=r.player1_id,
            player2_id=r.player2_id,
            pair_weight=r.pair_weight,
            ranking_position=idx,
        )
        for idx, r in enumerate(ordered, start=1)
    ]


def calculate_num_seeds(total_pairs: int) -> int:
    # N=0 -> 0
    # N=5 -> 1
    # N=8 -> 2
    # N=16 -> 4
    if total_pairs <= 0:
        return 0
    min_seeds = max(1, total_pairs // 8)
    max_seeds = total_pairs // 2
    default_seeds = total_pairs // 4
    return max(min_seeds, min(default_seeds, max_seeds))


def assign_seeds(ranking: list[PairRanking]) -> list[PairRanking]:
    num_seeds = min(calculate_num_seeds(len(ranking)), len(ranking))
    out: list[PairRanking] = []
    for idx, pair in enumerate(ranking):
        if idx < num_seeds:
            out.append(replace(pair, is_seed=True, seed_number=pair.ranking_position))
        else:
            out.append(replace(pair, is_seed=False, seed_number=None))
    return out


def seeds(ranking: Iterable[PairRanking]) -> list[PairRanking]:
    return [p for p in ranking if p.is_seed]
