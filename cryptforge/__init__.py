"""
project: Cryptforge
module: __init__.py
License: MIT

Flask application factory.

The web layer is a thin shell over ``cryptforge.generation``: it exposes level
generation as JSON. Configuration comes from ``CRYPTFORGE_*`` environment
variables (a local ``.env`` is loaded when present) and can be overridden per
app through ``create_app(config)``.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv
from flask import Flask

__version__ = "0.4.0"

# Load .env if present so CRYPTFORGE_* settings can be supplied without
# exporting shell variables during development.
load_dotenv()


def create_app(config: dict | None = None) -> Flask:
    """Build a Flask app with the level API registered.

    Keys in ``config`` land in ``app.config``. ``CRYPTFORGE_GENERATION`` (a
    mapping of generation options) and ``CRYPTFORGE_CATALOG`` (path to a room
    catalog) are read by the level routes on every request.
    """
    app = Flask(__name__, instance_relative_config=True)
    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        # read-only checkouts still serve requests; only file logging needs it
        pass

    app.config.update(
        CRYPTFORGE_GENERATION={},
        CRYPTFORGE_CATALOG=os.getenv("CRYPTFORGE_CATALOG") or None,
        CRYPTFORGE_TILE_PROPERTIES=os.getenv("CRYPTFORGE_TILE_PROPERTIES") or None,
    )
    if config:
        app.config.update(config)
    # keep room and layer fields in declaration order
    app.json.sort_keys = False

    from cryptforge.routes.level_api import bp_level

    app.register_blueprint(bp_level)
    return app


__all__ = ["create_app", "__version__"]
