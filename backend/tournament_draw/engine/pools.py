# backend/tournament_draw/engine/pools.py

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .models import Match, PairRanking, Pool, PoolStanding, Registration, RowId
from .rules import (
    DEFAULT_POOL_FORMAT,
    DEFAULT_POOL_SIZE,
    MATCH_SCHEDULED,
    QUALIFIERS_PER_POOL,
    ROUND_POOL,
)


def num_pools_for(total_pairs: int, pool_size: int = DEFAULT_POOL_SIZE) -> int:
    if pool_size < 2:
        raise ValueError("bad_pool_size")
    if total_pairs <= 0:
        return 0
    return -(-total_pairs // pool_size)


def distribute_pools(ranking: list[PairRanking], pool_size: int = DEFAULT_POOL_SIZE) -> list[list[PairRanking]]:
    """
    Розкладає пари по пулах "змійкою без розвороту": i -> i % num_pools.
    N=10, size=4 -> 3 пули: [1,4,7,10], [2,5,8], [3,6,9]
    Сильні пари розходяться по різних пулах, а не збираються в першому.
    """
    n_pools = num_pools_for(len(ranking), pool_size)
    pools: list[list[PairRanking]] = [[] for _ in range(n_pools)]
    for i, pair in enumerate(ranking):
        pools[i % n_pools].append(pair)
    return pools


def pool_round_robin(members: list[PairRanking]) -> list[tuple[PairRanking, PairRanking]]:
    # кожен з кожним, (i<j) у порядку членів пулу
    out: list[tuple[PairRanking, PairRanking]] = []
    for i in range(len(members)):
        for j in range(i + 1, len(members)):
            out.append((members[i], members[j]))
    return out


def build_pools(
    tournament_id: RowId,
    ranking: list[PairRanking],
    pool_size: int = DEFAULT_POOL_SIZE,
    pool_format: str = DEFAULT_POOL_FORMAT,
) -> list[Pool]:
    return [
        Pool(
            tournament_id=tournament_id,
            pool_number=idx,
            members=tuple(members),
            format=pool_format or DEFAULT_POOL_FORMAT,
        )
        for idx, members in enumerate(distribute_pools(ranking, pool_size), start=1)
    ]


def build_pool_matches(pool: Pool, pool_id: RowId | None = None) -> list[Match]:
    return [
        Match(
            tournament_id=pool.tournament_id,
            pool_id=pool_id,
            round_type=ROUND_POOL,
            round_number=1,
            match_order=order,
            team1_registration_id=a.registration_id,
            team2_registration_id=b.registration_id,
            status=MATCH_SCHEDULED,
        )
        for order, (a, b) in enumerate(pool_round_robin(list(pool.members)), start=1)
    ]


def total_pool_matches(pools: list[Pool]) -> int:
    # k*(k-1)/2 на пул
    return sum(p.num_teams * (p.num_teams - 1) // 2 for p in pools)


def score_sets(score: dict | None) -> list[tuple[int, int]]:
    """
    Гейми по сетах (team1, team2). Супер тай-брейк рахується як ще один сет,
    його очки йдуть у гейми.
    """
    if not score:
        return []
    out = [(int(s.get("team1") or 0), int(s.get("team2") or 0)) for s in score.get("sets") or []]
    tb = score.get("super_tiebreak")
    if tb:
        out.append((int(tb.get("team1") or 0), int(tb.get("team2") or 0)))
    return out


def standing_key(s: PoolStanding) -> tuple:
    # перемоги, різниця сетів, різниця геймів, далі сильніша пара
    return (-s.wins, -s.set_diff, -s.game_diff, -s.pair_weight)


def pool_standings(
    pool_id: RowId,
    pool_number: int,
    members: list[Registration],
    matches: Iterable[Match],
) -> list[PoolStanding]:
    """
    Таблиця одного пулу. Враховуються тільки матчі цього пулу з переможцем;
    незавершені матчі таблицю не змінюють. Рівні рядки лишаються в порядку members.
    """
    table = {
        r.id: {"wins": 0, "sets_won": 0, "sets_lost": 0, "games_won": 0, "games_lost": 0}
        for r in members
    }

    for m in matches:
        if m.pool_id != pool_id or m.round_type != ROUND_POOL or m.winner_registration_id is None:
            continue
        if m.winner_registration_id in table:
            table[m.winner_registration_id]["wins"] += 1

        t1, t2 = m.team1_registration_id, m.team2_registration_id
        for g1, g2 in score_sets(m.score):
            if t1 in table:
                table[t1]["games_won"] += g1
                table[t1]["games_lost"] += g2
            if t2 in table:
                table[t2]["games_won"] += g2
                table[t2]["games_lost"] += g1
            if g1 == g2:
                continue
            winner, loser = (t1, t2) if g1 > g2 else (t2, t1)
            if winner in table:
                table[winner]["sets_won"] += 1
            if loser in table:
                table[loser]["sets_lost"] += 1

    rows = [
        PoolStanding(
            registration_id=r.id,
            pool_id=pool_id,
            pool_number=pool_number,
            pair_weight=r.pair_weight,
            **table[r.id],
        )
        for r in members
    ]
    rows.sort(key=standing_key)
    return [replace(s, position=i) for i, s in enumerate(rows, start=1)]


def pool_qualifiers(tables: list[list[PoolStanding]]) -> tuple[list[PoolStanding], list[PoolStanding]]:
    """
    Переможці пулів і другі місця, кожна група відсортована між собою
    тими ж критеріями, що й таблиця пулу.
    """
    if not tables:
        raise ValueError("no_pools")
    if any(len(t) < QUALIFIERS_PER_POOL for t in tables):
        raise ValueError("not_enough_pool_pairs")
    winners = sorted((t[0] for t in tables), key=standing_key)
    runners = sorted((t[1] for t in tables), key=standing_key)
    return winners, runners
