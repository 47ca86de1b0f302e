"""Minimal structured logging helper.

Emits key=value pairs (or one JSON object per line) with a timestamp and
level. Generation code logs events rather than prose so sweeps over many
seeds can be grepped or parsed.

Usage:
    from cryptforge.logging_utils import get_logger
    log = get_logger("cryptforge.corridors")
    log.warn(event="corridor_fallback", edge="0-3")

Non-numeric values are str()'d with spaces replaced by underscores.
Reserved keys: level, ts, logger.
"""

from __future__ import annotations

import json
import os
import sys
import time

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}


def _current_level() -> int:
    return LEVELS.get(os.getenv("CRYPTFORGE_LOG_LEVEL", "info").lower(), 20)


def _json_mode() -> bool:
    return os.getenv("CRYPTFORGE_LOG_JSON", "0") in ("1", "true", "TRUE", "yes", "on")


def _format(level: str, **fields):
    if _json_mode():
        rec = {k: v for k, v in fields.items() if v is not None}
        rec["level"] = level
        rec["ts"] = int(time.time())
        try:
            return json.dumps(rec, separators=(",", ":"), default=str)
        except (TypeError, ValueError):
            return json.dumps({"level": level, "ts": int(time.time()), "error": "json_encode_failed"})
    parts = [f"level={level}", f"ts={int(time.time())}"]
    for k, v in fields.items():
        if v is None:
            continue
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            parts.append(f"{k}={v}")
        else:
            s = str(v).replace(" ", "_")
            parts.append(f"{k}={s}")
    return " ".join(parts)


class _Logger:
    def __init__(self, name: str | None = None):
        self.name = name or "cryptforge"

    def _log(self, lvl: str, **fields):
        if LEVELS[lvl] < _current_level():
            return
        if "logger" not in fields:
            fields["logger"] = self.name
        print(_format(lvl, **fields), file=sys.stdout if lvl != "error" else sys.stderr)

    def debug(self, **fields):
        self._log("debug", **fields)

    def info(self, **fields):
        self._log("info", **fields)

    def warn(self, **fields):
        self._log("warn", **fields)

    def error(self, **fields):
        self._log("error", **fields)


_LOGGER_CACHE = {}


def get_logger(name: str):
    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = _Logger(name)
    return _LOGGER_CACHE[name]


log = get_logger("cryptforge")
