# backend/tournament_draw/engine/rules.py

POINTS_WIN = 10
POINTS_LOSS = 3
REVIEW_BONUS = 10

REGISTRATION_CONFIRMED = "confirmed"

TYPE_KNOCKOUT = "official_knockout"
TYPE_POOLS = "official_pools"
TOURNAMENT_TYPES = (TYPE_KNOCKOUT, TYPE_POOLS)

DEFAULT_POOL_SIZE = 4
DEFAULT_POOL_FORMAT = "D1"
POOL_TYPE_MAIN_DRAW = "main_draw"
POOL_STATUS_PENDING = "pending"
PHASE_MAIN_DRAW = "main_draw"

MATCH_SCHEDULED = "scheduled"
MATCH_COMPLETED = "completed"

ROUND_POOL = "pool"
ROUND_QUALIFICATIONS = "qualifications"

# index = rounds remaining after the current one
ROUND_NAMES_FROM_FINAL = (
    "final",
    "semis",
    "quarters",
    "round_of_16",
    "round_of_32",
    "round_of_64",
)

POSITION_TEAM1 = "team1"
POSITION_TEAM2 = "team2"

# pools -> фінальна сітка: топ-2 кожного пулу
QUALIFIERS_PER_POOL = 2
