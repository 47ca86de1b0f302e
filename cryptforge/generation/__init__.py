"""Procedural level generation.

Public surface used by the CLI, the HTTP API and tests.
"""

from .config import DecorStencil, GenerationConfig, PrefabSpec, config_from_env  # noqa: F401
from .pipeline import Level, generate_from_mapping, generate_level  # noqa: F401
from .rng import LevelRng  # noqa: F401
from .templates import load_catalog, load_tile_properties, parse_catalog  # noqa: F401

__all__ = [
    "DecorStencil",
    "GenerationConfig",
    "Level",
    "LevelRng",
    "PrefabSpec",
    "config_from_env",
    "generate_from_mapping",
    "generate_level",
    "load_catalog",
    "load_tile_properties",
    "parse_catalog",
]
