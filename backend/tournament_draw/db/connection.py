import psycopg2
from psycopg2.extras import RealDictCursor

from tournament_draw.config import APP_USE_DB, DATABASE_URL, PG_SSLMODE


def get_conn():
    if not APP_USE_DB:
        raise RuntimeError("DB disabled (APP_USE_DB=0)")
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not set")
    return psycopg2.connect(DATABASE_URL, sslmode=PG_SSLMODE, cursor_factory=RealDictCursor)
