# backend/tournament_draw/db/migrate.py
#
# python -m tournament_draw.db.migrate [--dry-run]

import sys
from pathlib import Path

from tournament_draw.db.connection import get_conn

SCHEMA_DIR = Path(__file__).parent / "schema"


def pending_files(applied: set[str], schema_dir: Path = SCHEMA_DIR) -> list[Path]:
    # 001_*.sql, 002_*.sql ... застосовуються по імені файлу
    return [p for p in sorted(schema_dir.glob("*.sql")) if p.name not in applied]


def _prepare(cur) -> set[str]:
    cur.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            filename TEXT PRIMARY KEY,
            applied_at TIMESTAMP NOT NULL DEFAULT NOW()
        );
    """)
    cur.execute("SELECT filename FROM schema_migrations;")
    return {row["filename"] for row in cur.fetchall()}


def run_migrations(dry_run: bool = False) -> list[str]:
    if not list(SCHEMA_DIR.glob("*.sql")):
        raise RuntimeError(f"No .sql files found in: {SCHEMA_DIR}")

    done: list[str] = []
    conn = get_conn()
    try:
        # один with conn = одна транзакція на весь прогін
        with conn:
            with conn.cursor() as cur:
                todo = pending_files(_prepare(cur))
                for path in todo:
                    if dry_run:
                        print(f"[MIGRATE] pending {path.name}")
                        continue
                    print(f"[MIGRATE] applying {path.name} ...")
                    cur.execute(path.read_text(encoding="utf-8"))
                    cur.execute("INSERT INTO schema_migrations(filename) VALUES (%s);", (path.name,))
                    done.append(path.name)

        print(f"[MIGRATE] done, applied={len(done)}")
    finally:
        conn.close()
    return done


if __name__ == "__main__":
    try:
        run_migrations(dry_run="--dry-run" in sys.argv[1:])
    except Exception as e:
        print(f"[MIGRATE] error: {e}")
        sys.exit(1)
