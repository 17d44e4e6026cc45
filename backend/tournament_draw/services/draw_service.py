# backend/tournament_draw/services/draw_service.py

from __future__ import annotations

import logging
from dataclasses import replace

import psycopg2

from tournament_draw.config import SCORE_WITHIN_CLUB
from tournament_draw.db import tournament_draw_db as db
from tournament_draw.engine.bracket import (
    build_first_round,
    build_next_round,
    build_pools_final,
    calculate_byes,
    knockout_matches,
    latest_round,
    total_rounds,
)
from tournament_draw.engine.models import (
    BatchResult,
    Match,
    MatchHistoryEntry,
    PairRanking,
    PoolStanding,
    Registration,
    Tournament,
)
from tournament_draw.engine.pools import build_pool_matches, build_pools, pool_qualifiers, pool_standings
from tournament_draw.engine.ranking import assign_seeds, rank_pairs, seeds
from tournament_draw.engine.rules import (
    MATCH_COMPLETED,
    PHASE_MAIN_DRAW,
    ROUND_POOL,
    TOURNAMENT_TYPES,
    TYPE_KNOCKOUT,
    TYPE_POOLS,
)
from tournament_draw.engine.scheduling import next_free_slot, schedule_matches
from tournament_draw.engine.scoring import pair_weight, player_strength

logger = logging.getLogger(__name__)

STATUS_DRAW_PUBLISHED = "draw_published"
STATUS_IN_PROGRESS = "in_progress"


def _load_tournament(tournament_id: int) -> tuple[Tournament | None, str | None]:
    row = db.get_tournament(tournament_id)
    if not row:
        return None, "tournament_not_found"
    try:
        return Tournament.from_row(row), None
    except ValueError as e:
        logger.error("tournament %s has bad config: %s", tournament_id, e)
        return None, str(e)


def _load_registrations(tournament_id: int) -> tuple[list[Registration], list[dict]]:
    regs: list[Registration] = []
    bad: list[dict] = []
    for row in db.list_confirmed_registrations(tournament_id):
        try:
            regs.append(Registration.from_row(row))
        except ValueError as e:
            logger.warning("tournament %s: skipping registration row %s: %s", tournament_id, row.get("id"), e)
            bad.append({"registration_id": row.get("id"), "error": str(e)})
    return regs, bad


# ---------------------------
# Strength / weights
# ---------------------------

def player_points(player_id: int, club_id: int | None = None) -> int:
    history = [MatchHistoryEntry.from_row(r) for r in db.list_player_match_history(player_id, club_id)]
    return player_strength(history, has_review=db.player_has_review(player_id))


def calculate_pair_weight(player1_id: int, player2_id: int, club_id: int | None = None) -> int:
    points1 = player_points(player1_id, club_id)
    points2 = player_points(player2_id, club_id)
    weight = pair_weight(points1, points2)
    logger.info(
        "pair weight: player1=%s (%s) player2=%s (%s) -> %s",
        player1_id, points1, player2_id, points2, weight,
    )
    return weight


def compute_pair_weights(tournament_id: int) -> dict:
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}

    club_id = t.club_id if SCORE_WITHIN_CLUB else None
    regs, bad = _load_registrations(tournament_id)
    result = BatchResult(failed=list(bad))

    for reg in regs:
        try:
            weight = calculate_pair_weight(reg.player1_id, reg.player2_id, club_id)
            if db.set_pair_weight(reg.id, weight):
                result.succeeded.append({"registration_id": reg.id, "pair_weight": weight})
            else:
                result.failed.append({"registration_id": reg.id, "error": "registration_not_found"})
        except psycopg2.Error as e:
            logger.exception("tournament %s: pair weight failed for registration %s", tournament_id, reg.id)
            result.failed.append({"registration_id": reg.id, "error": str(e).strip() or "db_error"})

    logger.info(
        "tournament %s: pair weights updated=%s failed=%s",
        tournament_id, result.ok_count, result.failed_count,
    )
    return {"ok": True, "weights": result.summary(), "items": result.succeeded}


# ---------------------------
# Ranking / seeds
# ---------------------------

def get_ranking(tournament_id: int) -> dict:
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}

    regs, _ = _load_registrations(tournament_id)
    ranking = assign_seeds(rank_pairs(regs))
    return {
        "ok": True,
        "total_pairs": len(ranking),
        "num_seeds": len(seeds(ranking)),
        "byes": calculate_byes(len(ranking)),
        "items": [p.as_dict() for p in ranking],
    }


def persist_seeds(tournament_id: int, ranking: list[PairRanking]) -> BatchResult:
    result = BatchResult()
    for pair in seeds(ranking):
        try:
            if db.set_registration_seed(pair.registration_id, pair.seed_number):
                result.succeeded.append(pair.registration_id)
                logger.info(
                    "tournament %s: seed #%s -> registration %s",
                    tournament_id, pair.seed_number, pair.registration_id,
                )
            else:
                result.failed.append({"registration_id": pair.registration_id, "error": "registration_not_found"})
        except psycopg2.Error as e:
            logger.exception("tournament %s: error assigning seed to %s", tournament_id, pair.registration_id)
            result.failed.append({"registration_id": pair.registration_id, "error": str(e).strip() or "db_error"})
    return result


# ---------------------------
# Draw generation
# ---------------------------

def _insert_matches(tournament_id: int, matches: list[Match], result: BatchResult) -> list[Match]:
    created: list[Match] = []
    for m in matches:
        try:
            mid = db.create_match(m)
        except psycopg2.Error as e:
            logger.exception(
                "tournament %s: error creating match pool=%s round=%s order=%s",
                tournament_id, m.pool_id, m.round_number, m.match_order,
            )
            result.failed.append({
                "pool_id": m.pool_id,
                "round_number": m.round_number,
                "match_order": m.match_order,
                "error": str(e).strip() or "db_error",
            })
            continue
        result.succeeded.append(mid)
        created.append(replace(m, id=mid))
    return created


def _generate_knockout(t: Tournament, ranking: list[PairRanking]) -> dict:
    logger.info("tournament %s: generating knockout bracket for %s pairs", t.id, len(ranking))
    result = BatchResult()
    created = _insert_matches(t.id, build_first_round(t.id, ranking), result)
    logger.info("tournament %s: knockout bracket generated, matches=%s", t.id, len(created))
    return {
        "matches": result,
        "rounds_total": total_rounds(len(ranking)),
        "byes": calculate_byes(len(ranking)),
    }


def _generate_pools(t: Tournament, ranking: list[PairRanking]) -> dict:
    logger.info("tournament %s: generating pools, pairs=%s pool_size=%s", t.id, len(ranking), t.pool_size)
    pools = build_pools(t.id, ranking, t.pool_size, t.pool_format)

    matches = BatchResult()
    pool_result = BatchResult()
    members = BatchResult()

    for pool in pools:
        try:
            pool_id = db.create_pool(
                t.id, pool.pool_number, pool.pool_type, pool.num_teams, pool.format, pool.status,
            )
        except psycopg2.Error as e:
            # пул не створився -> його матчі теж пропускаємо, йдемо далі
            logger.exception("tournament %s: error creating pool %s", t.id, pool.pool_number)
            pool_result.failed.append({"pool_number": pool.pool_number, "error": str(e).strip() or "db_error"})
            continue
        pool_result.succeeded.append(pool_id)

        for pair in pool.members:
            try:
                if db.set_registration_pool(pair.registration_id, pool_id, PHASE_MAIN_DRAW):
                    members.succeeded.append(pair.registration_id)
                else:
                    members.failed.append({"registration_id": pair.registration_id, "error": "registration_not_found"})
            except psycopg2.Error as e:
                logger.exception("tournament %s: error linking registration %s to pool %s", t.id, pair.registration_id, pool_id)
                members.failed.append({"registration_id": pair.registration_id, "error": str(e).strip() or "db_error"})

        created = _insert_matches(t.id, build_pool_matches(pool, pool_id), matches)
        logger.info("tournament %s: pool %s matches generated=%s", t.id, pool.pool_number, len(created))

    logger.info("tournament %s: pools generated=%s", t.id, pool_result.ok_count)
    return {"matches": matches, "pools": pool_result, "pool_members": members}


def _set_status(tournament_id: int, status: str) -> dict:
    try:
        db.set_tournament_status(tournament_id, status)
    except psycopg2.Error as e:
        # матчі вже записані, тому статус: окрема помилка в результаті, не 500
        logger.exception("tournament %s: error setting status %s", tournament_id, status)
        return {"status": status, "ok": False, "error": str(e).strip() or "db_error"}
    return {"status": status, "ok": True}


def generate_draw(tournament_id: int, regenerate: bool = False) -> dict:
    """
    Один прохід жеребкування: рейтинг -> сіди -> сітка або пули.
    Якщо матчі вже існують: відмова (draw_already_generated),
    або, з regenerate=True, повне скидання попереднього жеребкування.
    Всі перевірки йдуть до скидання: невдала спроба старе жеребкування не чіпає.
    """
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}

    if t.tournament_type not in TOURNAMENT_TYPES:
        logger.warning("tournament %s: unsupported type %s", tournament_id, t.tournament_type)
        return {"ok": False, "error": "unsupported_tournament_type"}

    if t.tournament_type == TYPE_POOLS and t.pool_size < 2:
        return {"ok": False, "error": "bad_pool_size"}

    existing = db.count_matches(tournament_id)
    if existing and not regenerate:
        logger.warning("tournament %s: draw already generated (%s matches)", tournament_id, existing)
        return {"ok": False, "error": "draw_already_generated", "existing_matches": existing}

    regs, bad = _load_registrations(tournament_id)
    ranking = rank_pairs(regs)
    logger.info("tournament %s: pairs ranked=%s", tournament_id, len(ranking))

    if not ranking:
        # нема підтверджених пар: не помилка, нічого не генеруємо і нічого не видаляємо
        return {
            "ok": True,
            "total_pairs": 0,
            "seeds": 0,
            "matches_created": 0,
            "existing_matches": existing,
            "skipped_registrations": bad,
        }

    if existing:
        deleted = db.delete_tournament_draw(tournament_id)
        logger.info("tournament %s: previous draw removed, matches deleted=%s", tournament_id, deleted)

    ranking = assign_seeds(ranking)
    seed_result = persist_seeds(tournament_id, ranking)
    logger.info(
        "tournament %s: seeds assigned=%s failed=%s",
        tournament_id, seed_result.ok_count, seed_result.failed_count,
    )

    res: dict = {
        "ok": True,
        "tournament_type": t.tournament_type,
        "total_pairs": len(ranking),
        "seeds": len(seeds(ranking)),
        "seed_writes": seed_result.summary(),
        "skipped_registrations": bad,
    }

    if t.tournament_type == TYPE_KNOCKOUT:
        out = _generate_knockout(t, ranking)
        res["rounds_total"] = out["rounds_total"]
        res["byes"] = out["byes"]
    else:
        out = _generate_pools(t, ranking)
        res["pools"] = out["pools"].summary()
        res["pool_members"] = out["pool_members"].summary()

    res["matches_created"] = out["matches"].ok_count
    res["match_writes"] = out["matches"].summary()

    res["status_write"] = _set_status(tournament_id, STATUS_DRAW_PUBLISHED)
    logger.info(
        "tournament %s: draw generated, pairs=%s matches=%s",
        tournament_id, res["total_pairs"], res["matches_created"],
    )
    return res


# ---------------------------
# Scheduling
# ---------------------------

def schedule_tournament(tournament_id: int) -> dict:
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}

    pending = [Match.from_row(r) for r in db.list_unscheduled_matches(tournament_id)]
    if not pending:
        return {"ok": True, "matches_scheduled": 0}

    already = [Match.from_row(r) for r in db.list_scheduled_matches(tournament_id)]
    start = next_free_slot(t.start_date, already, t.match_duration_minutes)

    try:
        planned = schedule_matches(pending, t.available_courts, start, t.match_duration_minutes)
    except ValueError as e:
        logger.error("tournament %s: cannot schedule %s matches: %s", tournament_id, len(pending), e)
        return {"ok": False, "error": str(e)}

    result = BatchResult()
    for m in planned:
        try:
            if db.set_match_schedule(m.id, m.court_number, m.scheduled_time):
                result.succeeded.append(m.id)
            else:
                result.failed.append({"match_id": m.id, "error": "already_scheduled"})
        except psycopg2.Error as e:
            logger.exception("tournament %s: error scheduling match %s", tournament_id, m.id)
            result.failed.append({"match_id": m.id, "error": str(e).strip() or "db_error"})

    status_write = None
    if t.status != STATUS_IN_PROGRESS:
        status_write = _set_status(tournament_id, STATUS_IN_PROGRESS)

    logger.info(
        "tournament %s: matches scheduled=%s failed=%s start=%s courts=%s",
        tournament_id, result.ok_count, result.failed_count, start.isoformat(), list(t.available_courts),
    )
    return {
        "ok": True,
        "matches_scheduled": result.ok_count,
        "start": start.isoformat(),
        "courts": list(t.available_courts),
        "writes": result.summary(),
        "status_write": status_write,
        "items": [m.as_dict() for m in planned],
    }


# ---------------------------
# Knockout advancement
# ---------------------------

def advance_knockout(tournament_id: int) -> dict:
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}
    # пули теж доходять сюди, коли фінальна сітка вже створена (advance_pools_final)
    if t.tournament_type not in TOURNAMENT_TYPES:
        return {"ok": False, "error": "not_knockout"}

    matches = [Match.from_row(r) for r in db.list_matches(tournament_id)]
    current = latest_round(matches)
    if not current:
        return {"ok": False, "error": "no_knockout_matches"}

    # кількість раундів визначає перший раунд: 2 пари на матч, bye = 1
    first = [m for m in knockout_matches(matches) if m.round_number == 1]
    pairs_total = sum(1 if m.team2_registration_id is None else 2 for m in first)
    rounds_total = total_rounds(pairs_total)

    try:
        nxt = build_next_round(current, rounds_total)
    except ValueError as e:
        return {"ok": False, "error": str(e)}

    result = BatchResult()
    created = _insert_matches(tournament_id, nxt, result)

    # зворотний лінк: попередній раунд -> id матчу наступного раунду
    by_order = {m.match_order: m.id for m in created}
    links = BatchResult()
    for m in current:
        next_id = by_order.get(m.next_match_order)
        if m.id is None or next_id is None:
            continue
        try:
            if db.set_next_match(m.id, next_id):
                links.succeeded.append(m.id)
            else:
                links.failed.append({"match_id": m.id, "error": "match_not_found"})
        except psycopg2.Error as e:
            logger.exception("tournament %s: error linking match %s -> %s", tournament_id, m.id, next_id)
            links.failed.append({"match_id": m.id, "error": str(e).strip() or "db_error"})

    round_type = nxt[0].round_type
    logger.info(
        "tournament %s: next knockout round %s (%s) generated, matches=%s",
        tournament_id, nxt[0].round_number, round_type, result.ok_count,
    )
    return {
        "ok": True,
        "current_round": current[0].round_type,
        "next_round": round_type,
        "round_number": nxt[0].round_number,
        "matches_created": result.ok_count,
        "match_writes": result.summary(),
        "links": links.summary(),
    }


# ---------------------------
# Pools -> final bracket
# ---------------------------

def _pool_tables(tournament_id: int, matches: list[Match]) -> tuple[list[list[PoolStanding]], list[dict]]:
    regs, bad = _load_registrations(tournament_id)
    tables: list[list[PoolStanding]] = []
    for p in db.list_pools(tournament_id):
        members = [r for r in regs if r.pool_id == p["id"]]
        tables.append(pool_standings(p["id"], int(p["pool_number"]), members, matches))
    return tables, bad


def get_pool_standings(tournament_id: int) -> dict:
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}
    if t.tournament_type != TYPE_POOLS:
        return {"ok": False, "error": "not_pools"}

    matches = [Match.from_row(r) for r in db.list_matches(tournament_id)]
    tables, _ = _pool_tables(tournament_id, matches)
    return {
        "ok": True,
        "pools": [
            {"pool_number": table[0].pool_number, "items": [s.as_dict() for s in table]}
            for table in tables if table
        ],
    }


def advance_pools_final(tournament_id: int, regenerate: bool = False) -> dict:
    """
    Після пулів: таблиці пулів -> топ-2 кожного пулу -> фінальна сітка (round 1).
    Всі матчі пулів мають бути завершені. Існуюча фінальна сітка:
    відмова (final_already_generated) або, з regenerate=True, заміна.
    """
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}
    if t.tournament_type != TYPE_POOLS:
        return {"ok": False, "error": "not_pools"}

    matches = [Match.from_row(r) for r in db.list_matches(tournament_id)]
    pool_matches = [m for m in matches if m.round_type == ROUND_POOL]
    if not pool_matches:
        return {"ok": False, "error": "no_pool_matches"}
    pending = sum(1 for m in pool_matches if m.status != MATCH_COMPLETED)
    if pending:
        return {"ok": False, "error": "pool_matches_not_completed", "pending_matches": pending}

    existing = knockout_matches(matches)
    if existing and not regenerate:
        return {"ok": False, "error": "final_already_generated", "existing_matches": len(existing)}

    tables, bad = _pool_tables(tournament_id, matches)
    try:
        winners, runners = pool_qualifiers([tb for tb in tables if tb])
        final = build_pools_final(tournament_id, winners, runners)
    except ValueError as e:
        logger.error("tournament %s: cannot build final bracket from pools: %s", tournament_id, e)
        return {"ok": False, "error": str(e)}

    if existing:
        deleted = db.delete_knockout_matches(tournament_id)
        logger.info("tournament %s: previous final bracket removed, matches deleted=%s", tournament_id, deleted)

    result = BatchResult()
    created = _insert_matches(tournament_id, final, result)
    logger.info(
        "tournament %s: final bracket from %s pools, qualified=%s matches=%s",
        tournament_id, len(winners), len(winners) + len(runners), len(created),
    )
    return {
        "ok": True,
        "num_pools": len(winners),
        "qualified": len(winners) + len(runners),
        "byes": sum(1 for m in final if m.is_bye),
        "round_type": final[0].round_type,
        "rounds_total": total_rounds(len(winners) + len(runners)),
        "matches_created": result.ok_count,
        "match_writes": result.summary(),
        "standings": [[s.as_dict() for s in table] for table in tables],
        "skipped_registrations": bad,
    }


def advance_tournament(tournament_id: int) -> dict:
    # пули без фінальної сітки -> сітка з пулів, інакше наступний раунд сітки
    t, err = _load_tournament(tournament_id)
    if not t:
        return {"ok": False, "error": err}
    if t.tournament_type == TYPE_POOLS:
        matches = [Match.from_row(r) for r in db.list_matches(tournament_id)]
        if not knockout_matches(matches):
            return advance_pools_final(tournament_id)
    return advance_knockout(tournament_id)
