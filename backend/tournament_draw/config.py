import os

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
APP_ENV = os.getenv("APP_ENV", "dev").strip()
PORT = int(os.getenv("PORT", "10000"))

# без БД (локально/тести): APP_USE_DB=0
APP_USE_DB = os.getenv("APP_USE_DB", "1").strip() == "1"

PG_SSLMODE = os.getenv("PG_SSLMODE", "require").strip()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# бали гравця рахуються тільки в межах клубу турніру (0 = по всіх клубах)
SCORE_WITHIN_CLUB = os.getenv("SCORE_WITHIN_CLUB", "0").strip() == "1"
