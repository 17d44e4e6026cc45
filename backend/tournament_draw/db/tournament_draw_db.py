# backend/tournament_draw/db/tournament_draw_db.py

from __future__ import annotations

from datetime import datetime

from tournament_draw.db.connection import get_conn
from tournament_draw.db.db import fetch_all, fetch_one
from tournament_draw.engine.models import Match


# ---------------------------
# Tournament
# ---------------------------

def get_tournament(tournament_id: int) -> dict | None:
    return fetch_one(
        """
        SELECT id, club_id, tournament_type, pool_size, pool_format,
               available_courts, match_duration_minutes, start_date, status
        FROM tournaments
        WHERE id=%s
        """,
        (tournament_id,),
    )


def set_tournament_status(tournament_id: int, status: str) -> None:
    with get_conn() as conn:
        with conn.cursor() as cur:
            if status == "draw_published":
                cur.execute(
                    """
                    UPDATE tournaments
                    SET status=%s, draw_publication_date=NOW(), updated_at=NOW()
                    WHERE id=%s
                    """,
                    (status, tournament_id),
                )
            else:
                cur.execute(
                    "UPDATE tournaments SET status=%s, updated_at=NOW() WHERE id=%s",
                    (status, tournament_id),
                )
        conn.commit()


# ---------------------------
# Player history
# ---------------------------

def list_player_match_history(player_id: int, club_id: int | None = None) -> list[dict]:
    # winner_team: 1 / 2 / NULL (переможця ще нема)
    sql = """
        SELECT mp.match_id,
               mp.team,
               CASE
                 WHEN m.winner_team_id IS NULL THEN NULL
                 WHEN m.winner_team_id = m.team1_id THEN 1
                 ELSE 2
               END AS winner_team
        FROM match_participants mp
        JOIN matches m ON m.id = mp.match_id
        WHERE mp.user_id=%s AND mp.player_type='user'
    """
    params: tuple = (player_id,)
    if club_id is not None:
        sql += " AND m.club_id=%s"
        params = (player_id, club_id)

    return fetch_all(sql, params)


def player_has_review(player_id: int) -> bool:
    return fetch_one("SELECT 1 FROM reviews WHERE user_id=%s LIMIT 1", (player_id,)) is not None


# ---------------------------
# Registrations
# ---------------------------

def list_confirmed_registrations(tournament_id: int) -> list[dict]:
    # порядок вставки = tie-break рейтингу
    return fetch_all(
        """
        SELECT id, tournament_id, player1_id, player2_id, pair_weight, status,
               is_seed, seed_number, pool_id, phase
        FROM tournament_registrations
        WHERE tournament_id=%s AND status='confirmed'
        ORDER BY created_at ASC, id ASC
        """,
        (tournament_id,),
    )


def set_pair_weight(registration_id: int, pair_weight: int) -> bool:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE tournament_registrations SET pair_weight=%s, updated_at=NOW() WHERE id=%s",
                (pair_weight, registration_id),
            )
            changed = cur.rowcount == 1
        conn.commit()
    return changed


def set_registration_seed(registration_id: int, seed_number: int) -> bool:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE tournament_registrations
                SET is_seed=TRUE, seed_number=%s, updated_at=NOW()
                WHERE id=%s
                """,
                (seed_number, registration_id),
            )
            changed = cur.rowcount == 1
        conn.commit()
    return changed


def set_registration_pool(registration_id: int, pool_id: int, phase: str) -> bool:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE tournament_registrations
                SET pool_id=%s, phase=%s, updated_at=NOW()
                WHERE id=%s
                """,
                (pool_id, phase, registration_id),
            )
            changed = cur.rowcount == 1
        conn.commit()
    return changed


# ---------------------------
# Pools
# ---------------------------

def create_pool(
    tournament_id: int,
    pool_number: int,
    pool_type: str,
    num_teams: int,
    pool_format: str,
    status: str,
) -> int:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO tournament_pools(tournament_id, pool_number, pool_type, num_teams, format, status)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (tournament_id, pool_number, pool_type, num_teams, pool_format, status),
            )
            pid = int(cur.fetchone()["id"])
        conn.commit()
    return pid


def list_pools(tournament_id: int) -> list[dict]:
    return fetch_all(
        """
        SELECT id, pool_number, num_teams, format, status
        FROM tournament_pools
        WHERE tournament_id=%s
        ORDER BY pool_number ASC
        """,
        (tournament_id,),
    )


# ---------------------------
# Matches
# ---------------------------

def count_matches(tournament_id: int) -> int:
    row = fetch_one(
        "SELECT COUNT(*) AS c FROM tournament_matches WHERE tournament_id=%s",
        (tournament_id,),
    )
    return int(row["c"])


def create_match(m: Match) -> int:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO tournament_matches(
                  tournament_id, pool_id, round_type, round_number, match_order,
                  team1_registration_id, team2_registration_id,
                  is_bye, status, winner_registration_id,
                  court_number, scheduled_time,
                  next_match_order, next_match_position
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                RETURNING id
                """,
                (
                    m.tournament_id, m.pool_id, m.round_type, m.round_number, m.match_order,
                    m.team1_registration_id, m.team2_registration_id,
                    m.is_bye, m.status, m.winner_registration_id,
                    m.court_number, m.scheduled_time,
                    m.next_match_order, m.next_match_position,
                ),
            )
            mid = int(cur.fetchone()["id"])
        conn.commit()
    return mid


def list_matches(tournament_id: int) -> list[dict]:
    return fetch_all(
        """
        SELECT *
        FROM tournament_matches
        WHERE tournament_id=%s
        ORDER BY round_number ASC, match_order ASC, id ASC
        """,
        (tournament_id,),
    )


def list_unscheduled_matches(tournament_id: int) -> list[dict]:
    return fetch_all(
        """
        SELECT *
        FROM tournament_matches
        WHERE tournament_id=%s AND scheduled_time IS NULL
        ORDER BY round_number ASC, match_order ASC, id ASC
        """,
        (tournament_id,),
    )


def list_scheduled_matches(tournament_id: int) -> list[dict]:
    return fetch_all(
        """
        SELECT *
        FROM tournament_matches
        WHERE tournament_id=%s AND scheduled_time IS NOT NULL
        ORDER BY scheduled_time ASC, court_number ASC
        """,
        (tournament_id,),
    )


def set_match_schedule(match_id: int, court_number: int, scheduled_time: datetime) -> bool:
    # тільки якщо ще не запланований (повторний виклик нічого не зсуне)
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE tournament_matches
                SET court_number=%s, scheduled_time=%s, updated_at=NOW()
                WHERE id=%s AND scheduled_time IS NULL
                """,
                (court_number, scheduled_time, match_id),
            )
            changed = cur.rowcount == 1
        conn.commit()
    return changed


def set_next_match(match_id: int, next_match_id: int) -> bool:
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE tournament_matches SET next_match_id=%s, updated_at=NOW() WHERE id=%s",
                (next_match_id, match_id),
            )
            changed = cur.rowcount == 1
        conn.commit()
    return changed


def delete_tournament_draw(tournament_id: int) -> int:
    """
    Скидає згенероване жеребкування турніру одним комітом:
    матчі, пули, seed/pool поля реєстрацій. Повертає кількість видалених матчів.
    """
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM tournament_matches WHERE tournament_id=%s", (tournament_id,))
            deleted = cur.rowcount
            cur.execute(
                """
                UPDATE tournament_registrations
                SET is_seed=FALSE, seed_number=NULL, pool_id=NULL, phase=NULL, updated_at=NOW()
                WHERE tournament_id=%s
                """,
                (tournament_id,),
            )
            cur.execute("DELETE FROM tournament_pools WHERE tournament_id=%s", (tournament_id,))
        conn.commit()
    return deleted


def delete_knockout_matches(tournament_id: int) -> int:
    # тільки сітка на вибування; матчі пулів лишаються
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                DELETE FROM tournament_matches
                WHERE tournament_id=%s AND pool_id IS NULL AND round_type <> 'pool'
                """,
                (tournament_id,),
            )
            deleted = cur.rowcount
        conn.commit()
    return deleted
