# backend/tournament_draw/engine/models.py

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from .rules import (
    DEFAULT_POOL_FORMAT,
    DEFAULT_POOL_SIZE,
    MATCH_SCHEDULED,
    POOL_STATUS_PENDING,
    POOL_TYPE_MAIN_DRAW,
    REGISTRATION_CONFIRMED,
)

RowId = Union[int, str]


def _require(row: dict, *keys: str) -> None:
    missing = [k for k in keys if row.get(k) is None]
    if missing:
        raise ValueError(f"missing_{missing[0]}")


def parse_datetime(v: Any) -> datetime | None:
    if v is None:
        return None
    if isinstance(v, datetime):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(v).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_score(v: Any) -> dict | None:
    # JSONB приходить dict-ом, текстова колонка: рядком
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except ValueError:
            return None
    return v if isinstance(v, dict) else None


@dataclass(frozen=True)
class MatchHistoryEntry:
    """Один матч з точки зору одного учасника (team = 1 або 2)."""

    match_id: RowId
    team: int
    winner_team: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "MatchHistoryEntry":
        _require(row, "match_id", "team")
        winner = row.get("winner_team")
        return cls(
            match_id=row["match_id"],
            team=int(row["team"]),
            winner_team=int(winner) if winner is not None else None,
        )


@dataclass(frozen=True)
class Registration:
    id: RowId
    player1_id: RowId
    player2_id: RowId
    pair_weight: int = 0
    status: str = REGISTRATION_CONFIRMED
    tournament_id: Optional[RowId] = None
    is_seed: bool = False
    seed_number: Optional[int] = None
    pool_id: Optional[RowId] = None
    phase: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Registration":
        _require(row, "id", "player1_id", "player2_id")
        seed_number = row.get("seed_number")
        return cls(
            id=row["id"],
            player1_id=row["player1_id"],
            player2_id=row["player2_id"],
            pair_weight=int(row.get("pair_weight") or 0),
            status=row.get("status") or REGISTRATION_CONFIRMED,
            tournament_id=row.get("tournament_id"),
            is_seed=bool(row.get("is_seed")),
            seed_number=int(seed_number) if seed_number is not None else None,
            pool_id=row.get("pool_id"),
            phase=row.get("phase"),
        )


@dataclass(frozen=True)
class PairRanking:
    registration_id: RowId
    player1_id: RowId
    player2_id: RowId
    pair_weight: int
    ranking_position: int
    is_seed: bool = False
    seed_number: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "registration_id": self.registration_id,
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "pair_weight": self.pair_weight,
            "ranking_position": self.ranking_position,
            "is_seed": self.is_seed,
            "seed_number": self.seed_number,
        }


@dataclass(frozen=True)
class Tournament:
    id: RowId
    tournament_type: str
    start_date: datetime
    available_courts: tuple[int, ...] = ()
    match_duration_minutes: int = 60
    pool_size: int = DEFAULT_POOL_SIZE
    pool_format: str = DEFAULT_POOL_FORMAT
    status: Optional[str] = None
    club_id: Optional[RowId] = None

    @classmethod
    def from_row(cls, row: dict) -> "Tournament":
        _require(row, "id", "tournament_type")
        start = parse_datetime(row.get("start_date"))
        if start is None:
            raise ValueError("bad_start_date")
        courts = row.get("available_courts") or []
        duration = row.get("match_duration_minutes")
        pool_size = row.get("pool_size")
        return cls(
            id=row["id"],
            tournament_type=row["tournament_type"],
            start_date=start,
            # повтори корту прибираємо: один корт = один матч на слот
            available_courts=tuple(dict.fromkeys(int(c) for c in courts)),
            # 0 лишається 0 (помилка конфігу), дефолт тільки для NULL
            match_duration_minutes=int(duration) if duration is not None else 60,
            pool_size=int(pool_size) if pool_size is not None else DEFAULT_POOL_SIZE,
            pool_format=row.get("pool_format") or DEFAULT_POOL_FORMAT,
            status=row.get("status"),
            club_id=row.get("club_id"),
        )


@dataclass(frozen=True)
class Match:
    tournament_id: RowId
    round_type: str
    round_number: int
    match_order: int
    team1_registration_id: Optional[RowId]
    team2_registration_id: Optional[RowId] = None
    is_bye: bool = False
    status: str = MATCH_SCHEDULED
    winner_registration_id: Optional[RowId] = None
    pool_id: Optional[RowId] = None
    court_number: Optional[int] = None
    scheduled_time: Optional[datetime] = None
    next_match_order: Optional[int] = None
    next_match_position: Optional[str] = None
    # {"sets": [{"team1": 6, "team2": 4}, ...], "super_tiebreak": {"team1": 10, "team2": 8}}
    score: Optional[dict] = field(default=None, hash=False)
    id: Optional[RowId] = None

    @classmethod
    def from_row(cls, row: dict) -> "Match":
        _require(row, "tournament_id", "round_type")
        court = row.get("court_number")
        next_order = row.get("next_match_order")
        return cls(
            id=row.get("id"),
            tournament_id=row["tournament_id"],
            round_type=row["round_type"],
            round_number=int(row.get("round_number") or 1),
            match_order=int(row.get("match_order") or 0),
            team1_registration_id=row.get("team1_registration_id"),
            team2_registration_id=row.get("team2_registration_id"),
            is_bye=bool(row.get("is_bye")),
            status=row.get("status") or MATCH_SCHEDULED,
            winner_registration_id=row.get("winner_registration_id"),
            pool_id=row.get("pool_id"),
            court_number=int(court) if court is not None else None,
            scheduled_time=parse_datetime(row.get("scheduled_time")),
            next_match_order=int(next_order) if next_order is not None else None,
            next_match_position=row.get("next_match_position"),
            score=parse_score(row.get("score")),
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "pool_id": self.pool_id,
            "round_type": self.round_type,
            "round_number": self.round_number,
            "match_order": self.match_order,
            "team1_registration_id": self.team1_registration_id,
            "team2_registration_id": self.team2_registration_id,
            "is_bye": self.is_bye,
            "status": self.status,
            "winner_registration_id": self.winner_registration_id,
            "court_number": self.court_number,
            "scheduled_time": self.scheduled_time.isoformat() if self.scheduled_time else None,
            "next_match_order": self.next_match_order,
            "next_match_position": self.next_match_position,
            "score": self.score,
        }


@dataclass(frozen=True)
class Pool:
    tournament_id: RowId
    pool_number: int
    members: tuple[PairRanking, ...]
    format: str = DEFAULT_POOL_FORMAT
    pool_type: str = POOL_TYPE_MAIN_DRAW
    status: str = POOL_STATUS_PENDING

    @property
    def num_teams(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class PoolStanding:
    """Рядок таблиці пулу: перемоги, сети і гейми однієї пари."""

    registration_id: RowId
    pool_id: RowId
    pool_number: int
    pair_weight: int = 0
    wins: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    position: int = 0

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def game_diff(self) -> int:
        return self.games_won - self.games_lost

    def as_dict(self) -> dict:
        return {
            "registration_id": self.registration_id,
            "pool_id": self.pool_id,
            "pool_number": self.pool_number,
            "position": self.position,
            "wins": self.wins,
            "sets_won": self.sets_won,
            "sets_lost": self.sets_lost,
            "set_diff": self.set_diff,
            "games_won": self.games_won,
            "games_lost": self.games_lost,
            "game_diff": self.game_diff,
        }


@dataclass
class BatchResult:
    """
    Результат циклу незалежних записів у БД.
    Помилка одного запису не зупиняє цикл: запис іде в `failed` разом з причиною.
    """

    succeeded: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def ok_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def summary(self) -> dict:
        return {"succeeded": self.ok_count, "failed": self.failed_count, "failures": list(self.failed)}
