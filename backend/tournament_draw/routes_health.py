# backend/tournament_draw/routes_health.py

from flask import Blueprint, jsonify

from .config import APP_ENV, APP_USE_DB, SCORE_WITHIN_CLUB

bp_health = Blueprint("health", __name__)


@bp_health.get("/health")
def health():
    return jsonify({
        "ok": True,
        "service": "tournament-draw",
        "env": APP_ENV,
        "use_db": APP_USE_DB,
        "score_within_club": SCORE_WITHIN_CLUB,
    })
