# backend/tournament_draw/engine/bracket.py

from __future__ import annotations

from typing import Iterable, Optional

from .models import Match, PairRanking, PoolStanding, RowId
from .rules import (
    MATCH_COMPLETED,
    MATCH_SCHEDULED,
    POSITION_TEAM1,
    POSITION_TEAM2,
    ROUND_NAMES_FROM_FINAL,
    ROUND_POOL,
    ROUND_QUALIFICATIONS,
)


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def calculate_byes(total_pairs: int) -> int:
    # N=5 -> 3, N=8 -> 0, N=0 -> 0
    if total_pairs <= 0:
        return 0
    return next_power_of_two(total_pairs) - total_pairs


def total_rounds(total_pairs: int) -> int:
    # ceil(log2(N)); одна пара теж грає "фінал" (bye -> чемпіон)
    if total_pairs <= 0:
        return 0
    return max(1, (total_pairs - 1).bit_length())


def round_type_for(rounds_total: int, current_round: int) -> str:
    distance = rounds_total - current_round
    if 0 <= distance < len(ROUND_NAMES_FROM_FINAL):
        return ROUND_NAMES_FROM_FINAL[distance]
    return ROUND_QUALIFICATIONS


def _link(rounds_total: int, round_number: int, match_order: int) -> tuple[Optional[int], Optional[str]]:
    if round_number >= rounds_total:
        return None, None
    position = POSITION_TEAM1 if match_order % 2 == 1 else POSITION_TEAM2
    return (match_order + 1) // 2, position


def _bracket_match(
    tournament_id: RowId,
    rounds_total: int,
    round_number: int,
    order: int,
    team1: Optional[RowId],
    team2: Optional[RowId],
) -> Match:
    next_order, next_position = _link(rounds_total, round_number, order)
    is_bye = team2 is None
    return Match(
        tournament_id=tournament_id,
        round_type=round_type_for(rounds_total, round_number),
        round_number=round_number,
        match_order=order,
        team1_registration_id=team1,
        team2_registration_id=team2,
        is_bye=is_bye,
        status=MATCH_COMPLETED if is_bye else MATCH_SCHEDULED,
        winner_registration_id=team1 if is_bye else None,
        next_match_order=next_order,
        next_match_position=next_position,
    )


def _pair_up(
    tournament_id: RowId,
    teams: list[RowId],
    rounds_total: int,
    round_number: int,
) -> list[Match]:
    return [
        _bracket_match(
            tournament_id,
            rounds_total,
            round_number,
            i // 2 + 1,
            teams[i],
            teams[i + 1] if i + 1 < len(teams) else None,
        )
        for i in range(0, len(teams), 2)
    ]


def build_first_round(tournament_id: RowId, ranking: list[PairRanking]) -> list[Match]:
    """
    Перший раунд single elimination.
    Пари йдуть по рейтингу двійками: (1,2), (3,4), ...
    Якщо N непарне: остання пара отримує bye (матч одразу completed).
    Наступні раунди створюються з переможців (build_next_round).
    """
    if not ranking:
        return []
    teams = [p.registration_id for p in ranking]
    return _pair_up(tournament_id, teams, total_rounds(len(ranking)), 1)


def knockout_matches(matches: Iterable[Match]) -> list[Match]:
    return [m for m in matches if m.pool_id is None and m.round_type != ROUND_POOL]


def latest_round(matches: Iterable[Match]) -> list[Match]:
    ko = knockout_matches(matches)
    if not ko:
        return []
    last = max(m.round_number for m in ko)
    return sorted((m for m in ko if m.round_number == last), key=lambda m: m.match_order)


def build_next_round(completed_round: list[Match], rounds_total: int) -> list[Match]:
    if not completed_round:
        raise ValueError("no_matches")

    ordered = sorted(completed_round, key=lambda m: m.match_order)
    round_number = ordered[0].round_number
    if round_number >= rounds_total or len(ordered) < 2:
        raise ValueError("no_next_round")

    if any(m.status != MATCH_COMPLETED or m.winner_registration_id is None for m in ordered):
        raise ValueError("round_not_completed")

    winners = [m.winner_registration_id for m in ordered]
    return _pair_up(ordered[0].tournament_id, winners, rounds_total, round_number + 1)


def build_pools_final(
    tournament_id: RowId,
    winners: list[PoolStanding],
    runners: list[PoolStanding],
) -> list[Match]:
    """
    Фінальна сітка після пулів з перших і других місць, розмір до степеня двійки.

    Bye отримують спершу переможці пулів (у порядку winners), потім найкращі другі.
    2 або 4 пули без bye: хрест, переможець грає з другим місцем іншого пулу,
    TS1-2(TS4), TS4-2(TS1), TS2-2(TS3), TS3-2(TS2).
    Інакше: bye-матчі першими, далі решта підряд (переможці, потім другі).
    """
    qualified = len(winners) + len(runners)
    if qualified < 2:
        raise ValueError("not_enough_qualifiers")

    size = next_power_of_two(qualified)
    rounds_total = total_rounds(size)
    byes = size - qualified

    pairs: list[tuple[RowId, Optional[RowId]]] = []
    if byes == 0 and len(winners) in (2, 4):
        runner_of = {s.pool_number: s.registration_id for s in runners}
        seed_pairs = [(0, 1)] if len(winners) == 2 else [(0, 3), (1, 2)]
        for a, b in seed_pairs:
            wa, wb = winners[a], winners[b]
            pairs.append((wa.registration_id, runner_of[wb.pool_number]))
            pairs.append((wb.registration_id, runner_of[wa.pool_number]))
    else:
        ranked = [s.registration_id for s in winners + runners]
        pairs.extend((rid, None) for rid in ranked[:byes])
        playing = ranked[byes:]
        pairs.extend((playing[i], playing[i + 1]) for i in range(0, len(playing), 2))

    return [
        _bracket_match(tournament_id, rounds_total, 1, order, t1, t2)
        for order, (t1, t2) in enumerate(pairs, start=1)
    ]
