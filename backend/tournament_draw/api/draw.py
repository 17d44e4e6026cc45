# backend/tournament_draw/api/draw.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tournament_draw.services.draw_service import (
    advance_pools_final,
    advance_tournament,
    compute_pair_weights,
    generate_draw,
    get_pool_standings,
    get_ranking,
    schedule_tournament,
)

bp_draw = Blueprint("draw", __name__, url_prefix="/draw")


def _bool(v, name: str) -> bool:
    if v is None or isinstance(v, bool):
        return bool(v)
    s = str(v).strip().lower()
    if s in ("1", "true", "yes"):
        return True
    if s in ("0", "false", "no", ""):
        return False
    raise ValueError(f"bad_{name}")


def _respond(res: dict):
    if not res.get("ok") and str(res.get("error", "")).endswith("_not_found"):
        return jsonify(res), 404
    return jsonify(res), (200 if res.get("ok") else 400)


@bp_draw.get("/<int:tournament_id>/ranking")
def draw_ranking(tournament_id: int):
    return _respond(get_ranking(tournament_id))


@bp_draw.post("/<int:tournament_id>/weights")
def draw_weights(tournament_id: int):
    return _respond(compute_pair_weights(tournament_id))


@bp_draw.post("/<int:tournament_id>/generate")
def draw_generate(tournament_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        regenerate = _bool(payload.get("regenerate"), "regenerate")
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    res = generate_draw(tournament_id, regenerate=regenerate)
    if res.get("ok"):
        return jsonify(res), 201
    return _respond(res)


@bp_draw.post("/<int:tournament_id>/schedule")
def draw_schedule(tournament_id: int):
    return _respond(schedule_tournament(tournament_id))


@bp_draw.post("/<int:tournament_id>/advance")
def draw_advance(tournament_id: int):
    return _respond(advance_tournament(tournament_id))


@bp_draw.get("/<int:tournament_id>/standings")
def draw_standings(tournament_id: int):
    return _respond(get_pool_standings(tournament_id))


@bp_draw.post("/<int:tournament_id>/pools-final")
def draw_pools_final(tournament_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        regenerate = _bool(payload.get("regenerate"), "regenerate")
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    res = advance_pools_final(tournament_id, regenerate=regenerate)
    if res.get("ok"):
        return jsonify(res), 201
    return _respond(res)
