from dataclasses import replace

import pytest

from conftest import make_ranking
from tournament_draw.engine.bracket import (
    build_first_round,
    build_next_round,
    build_pools_final,
    calculate_byes,
    latest_round,
    next_power_of_two,
    round_type_for,
    total_rounds,
)
from tournament_draw.engine.models import Match, PoolStanding


def test_byes_reach_next_power_of_two():
    for n in range(1, 130):
        p = next_power_of_two(n)
        assert p >= n
        assert p & (p - 1) == 0
        assert (p == n) == (n & (n - 1) == 0)
        assert calculate_byes(n) == p - n
    assert calculate_byes(0) == 0
    assert calculate_byes(5) == 3
    assert calculate_byes(16) == 0


@pytest.mark.parametrize(
    "distance,name",
    [(0, "final"), (1, "semis"), (2, "quarters"), (3, "round_of_16"),
     (4, "round_of_32"), (5, "round_of_64"), (6, "qualifications"), (9, "qualifications")],
)
def test_round_names(distance, name):
    assert round_type_for(10, 10 - distance) == name


def test_total_rounds():
    assert [total_rounds(n) for n in (0, 1, 2, 3, 4, 5, 8, 9, 16, 17)] == [0, 1, 1, 2, 2, 3, 3, 4, 4, 5]


def test_first_round_five_pairs():
    ranking = make_ranking([50, 40, 30, 20, 10])
    ids = [p.registration_id for p in ranking]
    matches = build_first_round(1, ranking)

    assert [(m.team1_registration_id, m.team2_registration_id) for m in matches] == [
        (ids[0], ids[1]),
        (ids[2], ids[3]),
        (ids[4], None),
    ]
    assert [m.match_order for m in matches] == [1, 2, 3]
    assert all(m.round_number == 1 and m.round_type == "quarters" for m in matches)

    bye = matches[-1]
    assert bye.is_bye and bye.status == "completed"
    assert bye.winner_registration_id == ids[4]
    assert all(not m.is_bye and m.status == "scheduled" and m.winner_registration_id is None for m in matches[:2])


def test_first_round_counts():
    for n in range(1, 40):
        matches = build_first_round(1, make_ranking(list(range(n, 0, -1))))
        assert len(matches) == (n + 1) // 2
        byes = [m for m in matches if m.is_bye]
        assert len(byes) == n % 2
        for m in byes:
            assert m.winner_registration_id == m.team1_registration_id
            assert m.team2_registration_id is None


def test_first_round_links_to_next_round():
    matches = build_first_round(1, make_ranking([8, 7, 6, 5, 4, 3, 2, 1]))
    assert [(m.next_match_order, m.next_match_position) for m in matches] == [
        (1, "team1"), (1, "team2"), (2, "team1"), (2, "team2"),
    ]


def test_edge_sizes():
    assert build_first_round(1, []) == []

    (only,) = build_first_round(1, make_ranking([42]))
    assert only.is_bye and only.status == "completed"
    assert only.round_type == "final"
    assert only.winner_registration_id == only.team1_registration_id
    assert only.next_match_order is None

    (final,) = build_first_round(1, make_ranking([2, 1]))
    assert final.round_type == "final" and not final.is_bye
    assert final.next_match_position is None


def _complete(matches):
    return [
        m if m.is_bye else replace(m, status="completed", winner_registration_id=m.team2_registration_id)
        for m in matches
    ]


def test_next_round_pairs_winners():
    ranking = make_ranking([50, 40, 30, 20, 10])
    first = _complete(build_first_round(1, ranking))
    semis = build_next_round(first, total_rounds(5))

    assert [m.round_type for m in semis] == ["semis", "semis"]
    assert semis[0].round_number == 2
    assert (semis[0].team1_registration_id, semis[0].team2_registration_id) == (
        first[0].winner_registration_id, first[1].winner_registration_id,
    )
    assert semis[1].is_bye and semis[1].winner_registration_id == first[2].winner_registration_id

    final = build_next_round(_complete(semis), total_rounds(5))
    assert len(final) == 1 and final[0].round_type == "final"

    with pytest.raises(ValueError, match="no_next_round"):
        build_next_round(_complete(final), total_rounds(5))


def test_next_round_requires_completed_round():
    first = build_first_round(1, make_ranking([4, 3, 2, 1]))
    with pytest.raises(ValueError, match="round_not_completed"):
        build_next_round(first, 2)


def test_latest_round_skips_pool_matches():
    pool_match = Match(tournament_id=1, pool_id=9, round_type="pool", round_number=3, match_order=1, team1_registration_id=1)
    first = build_first_round(1, make_ranking([4, 3, 2, 1]))
    assert latest_round(first + [pool_match]) == first
    assert latest_round([pool_match]) == []


def _standings(n_pools, position):
    # переможці: id = номер пулу, другі місця: 10 + номер пулу
    base = 0 if position == 1 else 10
    return [
        PoolStanding(registration_id=base + p, pool_id=100 + p, pool_number=p, wins=3 - position, position=position)
        for p in range(1, n_pools + 1)
    ]


def _teams(matches):
    return [(m.team1_registration_id, m.team2_registration_id) for m in matches]


def test_pools_final_four_pools_cross():
    final = build_pools_final(1, _standings(4, 1), _standings(4, 2))

    # TS1-2D, TS4-2A, TS2-2C, TS3-2B
    assert _teams(final) == [(1, 14), (4, 11), (2, 13), (3, 12)]
    assert {m.round_type for m in final} == {"quarters"}
    assert [m.next_match_order for m in final] == [1, 1, 2, 2]
    assert not any(m.is_bye for m in final)


def test_pools_final_two_pools_cross():
    final = build_pools_final(1, _standings(2, 1), _standings(2, 2))
    assert _teams(final) == [(1, 12), (2, 11)]
    assert {m.round_type for m in final} == {"semis"}


def test_pools_final_three_pools_byes_to_winners():
    final = build_pools_final(1, _standings(3, 1), _standings(3, 2))

    assert _teams(final) == [(1, None), (2, None), (3, 11), (12, 13)]
    byes = [m for m in final if m.is_bye]
    assert [(m.status, m.winner_registration_id) for m in byes] == [("completed", 1), ("completed", 2)]
    assert {m.round_type for m in final} == {"quarters"}


def test_pools_final_single_pool_is_the_final():
    (final,) = build_pools_final(1, _standings(1, 1), _standings(1, 2))
    assert (final.team1_registration_id, final.team2_registration_id) == (1, 11)
    assert final.round_type == "final"
    assert final.next_match_order is None


def test_pools_final_needs_two_qualifiers():
    with pytest.raises(ValueError, match="not_enough_qualifiers"):
        build_pools_final(1, _standings(1, 1), [])
