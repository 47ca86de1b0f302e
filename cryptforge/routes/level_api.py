"""
project: Cryptforge
module: level_api.py
License: MIT

Level generation API routes.

Generation options resolve in increasing precedence: built-in defaults,
``CRYPTFORGE_*`` environment variables, ``app.config['CRYPTFORGE_GENERATION']``,
then the request body.
"""
from dataclasses import asdict

from flask import Blueprint, current_app, jsonify, request

from cryptforge.errors import ConfigError
from cryptforge.generation import (
    GenerationConfig,
    config_from_env,
    generate_level,
    load_catalog,
    load_tile_properties,
    parse_catalog,
)
from cryptforge.generation.templates import parse_tile_properties
from cryptforge.logging_utils import get_logger

bp_level = Blueprint("level_api", __name__)
log = get_logger("cryptforge.api")


def _base_config() -> GenerationConfig:
    cfg = config_from_env()
    app_overrides = current_app.config.get("CRYPTFORGE_GENERATION") or {}
    return cfg.with_overrides(app_overrides) if app_overrides else cfg


def _catalog_from(payload: dict):
    if "catalog" in payload:
        raw = payload.pop("catalog")
        return parse_catalog(raw) if raw is not None else None
    path = current_app.config.get("CRYPTFORGE_CATALOG")
    return load_catalog(path) if path else None


def _tile_properties_from(payload: dict):
    if "tile_properties" in payload:
        raw = payload.pop("tile_properties")
        return parse_tile_properties(raw) if raw is not None else None
    path = current_app.config.get("CRYPTFORGE_TILE_PROPERTIES")
    return load_tile_properties(path) if path else None


@bp_level.errorhandler(ConfigError)
def _config_error(exc):
    log.warn(event="bad_request", error=str(exc))
    return jsonify({"error": str(exc)}), 400


@bp_level.route("/api/level/generate", methods=["POST"])
def generate():
    """Generate a level.

    Body JSON (all optional): generation options (``seed``, ``width``,
    ``corridor_width``, ``prefabs`` ...), plus ``catalog`` and
    ``tile_properties`` given inline. Without a catalog the maze generator is
    used. ``?ascii=1`` adds a text rendering to the response.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ConfigError("request body must be a JSON object")
    payload = dict(payload)
    catalog = _catalog_from(payload)
    tile_props = _tile_properties_from(payload)
    cfg = _base_config().with_overrides(payload)
    level = generate_level(cfg, catalog, tile_props)
    out = level.to_dict()
    if request.args.get("ascii") in ("1", "true", "yes"):
        out["ascii"] = level.to_ascii()
    return jsonify(out)


@bp_level.route("/api/level/defaults", methods=["GET"])
def defaults():
    cfg = _base_config()
    data = asdict(cfg)
    data["tileset_keys"] = cfg.tileset_keys()
    data["catalog"] = current_app.config.get("CRYPTFORGE_CATALOG")
    return jsonify(data)
