from .db import fetch_one, fetch_all
from .connection import get_conn

__all__ = ["get_conn", "fetch_one", "fetch_all"]
