from datetime import datetime, timezone

import psycopg2
import pytest

from tournament_draw.engine.models import Registration
from tournament_draw.engine.ranking import rank_pairs
from tournament_draw.services import draw_service

START = datetime(2026, 5, 9, 9, 0, tzinfo=timezone.utc)


def make_registrations(weights, start_id=1):
    return [
        Registration(id=start_id + i, player1_id=100 + 2 * i, player2_id=101 + 2 * i, pair_weight=w)
        for i, w in enumerate(weights)
    ]


def make_ranking(weights):
    return rank_pairs(make_registrations(weights))


class FakeDrawDb:
    """In-memory stand-in for tournament_draw_db with per-call failure injection."""

    def __init__(self):
        self.tournaments = {}
        self.registrations = {}
        self.pools = {}
        self.matches = {}
        self.history = {}
        self.reviews = set()
        self.statuses = []
        self.fail = {}
        self._next_id = 1000

    # helpers -------------------------------------------------------------

    def _new_id(self):
        self._next_id += 1
        return self._next_id

    def _maybe_fail(self, name, key):
        if key in self.fail.get(name, ()):
            raise psycopg2.OperationalError(f"{name} failed for {key}")

    def add_tournament(self, tournament_id=1, **kw):
        row = {
            "id": tournament_id,
            "club_id": 7,
            "tournament_type": "official_knockout",
            "pool_size": 4,
            "pool_format": "D1",
            "available_courts": [1, 2],
            "match_duration_minutes": 60,
            "start_date": START,
            "status": "registration_closed",
        }
        row.update(kw)
        self.tournaments[tournament_id] = row
        return row

    def add_registrations(self, tournament_id, weights, status="confirmed"):
        ids = []
        for w in weights:
            rid = self._new_id()
            self.registrations[rid] = {
                "id": rid,
                "tournament_id": tournament_id,
                "player1_id": rid * 10,
                "player2_id": rid * 10 + 1,
                "pair_weight": w,
                "status": status,
                "is_seed": False,
                "seed_number": None,
                "pool_id": None,
                "phase": None,
            }
            ids.append(rid)
        return ids

    def matches_of(self, tournament_id):
        return sorted(
            (m for m in self.matches.values() if m["tournament_id"] == tournament_id),
            key=lambda m: (m["round_number"], m["match_order"], m["id"]),
        )

    def finish_pool_matches(self, tournament_id, winner="team1", score=None):
        for m in self.matches_of(tournament_id):
            if m["round_type"] == "pool":
                m.update(status="completed", winner_registration_id=m[f"{winner}_registration_id"], score=score)

    # adapter surface -----------------------------------------------------

    def get_tournament(self, tournament_id):
        return self.tournaments.get(tournament_id)

    def set_tournament_status(self, tournament_id, status):
        self._maybe_fail("set_tournament_status", tournament_id)
        self.tournaments[tournament_id]["status"] = status
        self.statuses.append((tournament_id, status))

    def list_player_match_history(self, player_id, club_id=None):
        return [
            r for r in self.history.get(player_id, [])
            if club_id is None or r.get("club_id") == club_id
        ]

    def player_has_review(self, player_id):
        return player_id in self.reviews

    def list_confirmed_registrations(self, tournament_id):
        return [
            dict(r) for r in sorted(self.registrations.values(), key=lambda r: r["id"])
            if r["tournament_id"] == tournament_id and r["status"] == "confirmed"
        ]

    def set_pair_weight(self, registration_id, pair_weight):
        self._maybe_fail("set_pair_weight", registration_id)
        if registration_id not in self.registrations:
            return False
        self.registrations[registration_id]["pair_weight"] = pair_weight
        return True

    def set_registration_seed(self, registration_id, seed_number):
        self._maybe_fail("set_registration_seed", registration_id)
        if registration_id not in self.registrations:
            return False
        self.registrations[registration_id].update(is_seed=True, seed_number=seed_number)
        return True

    def set_registration_pool(self, registration_id, pool_id, phase):
        self._maybe_fail("set_registration_pool", registration_id)
        if registration_id not in self.registrations:
            return False
        self.registrations[registration_id].update(pool_id=pool_id, phase=phase)
        return True

    def create_pool(self, tournament_id, pool_number, pool_type, num_teams, pool_format, status):
        self._maybe_fail("create_pool", pool_number)
        pid = self._new_id()
        self.pools[pid] = {
            "id": pid,
            "tournament_id": tournament_id,
            "pool_number": pool_number,
            "pool_type": pool_type,
            "num_teams": num_teams,
            "format": pool_format,
            "status": status,
        }
        return pid

    def list_pools(self, tournament_id):
        return sorted(
            (dict(p) for p in self.pools.values() if p["tournament_id"] == tournament_id),
            key=lambda p: p["pool_number"],
        )

    def count_matches(self, tournament_id):
        return len(self.matches_of(tournament_id))

    def create_match(self, m):
        self._maybe_fail("create_match", (m.pool_id, m.round_number, m.match_order))
        mid = self._new_id()
        row = m.as_dict()
        row["id"] = mid
        row["scheduled_time"] = m.scheduled_time
        row["next_match_id"] = None
        self.matches[mid] = row
        return mid

    def list_matches(self, tournament_id):
        return [dict(m) for m in self.matches_of(tournament_id)]

    def list_unscheduled_matches(self, tournament_id):
        return [dict(m) for m in self.matches_of(tournament_id) if m["scheduled_time"] is None]

    def list_scheduled_matches(self, tournament_id):
        return [dict(m) for m in self.matches_of(tournament_id) if m["scheduled_time"] is not None]

    def set_match_schedule(self, match_id, court_number, scheduled_time):
        self._maybe_fail("set_match_schedule", match_id)
        m = self.matches.get(match_id)
        if not m or m["scheduled_time"] is not None:
            return False
        m.update(court_number=court_number, scheduled_time=scheduled_time)
        return True

    def set_next_match(self, match_id, next_match_id):
        if match_id not in self.matches:
            return False
        self.matches[match_id]["next_match_id"] = next_match_id
        return True

    def delete_tournament_draw(self, tournament_id):
        doomed = [mid for mid, m in self.matches.items() if m["tournament_id"] == tournament_id]
        for mid in doomed:
            del self.matches[mid]
        for r in self.registrations.values():
            if r["tournament_id"] == tournament_id:
                r.update(is_seed=False, seed_number=None, pool_id=None, phase=None)
        for pid in [p for p, row in self.pools.items() if row["tournament_id"] == tournament_id]:
            del self.pools[pid]
        return len(doomed)

    def delete_knockout_matches(self, tournament_id):
        doomed = [
            mid for mid, m in self.matches.items()
            if m["tournament_id"] == tournament_id and m["pool_id"] is None and m["round_type"] != "pool"
        ]
        for mid in doomed:
            del self.matches[mid]
        return len(doomed)


@pytest.fixture
def fake_db(monkeypatch):
    fake = FakeDrawDb()
    monkeypatch.setattr(draw_service, "db", fake)
    return fake
