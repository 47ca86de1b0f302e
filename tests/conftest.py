import os
import sys

import pytest

# Ensure repository root importable early
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from cryptforge import create_app  # noqa: E402
from cryptforge.generation.templates import parse_catalog  # noqa: E402

from level_test_utils import raw_catalog  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # A developer .env must not leak generation settings into tests
    for key in list(os.environ):
        if key.startswith("CRYPTFORGE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def catalog_data():
    return raw_catalog()


@pytest.fixture()
def catalog(catalog_data):
    return parse_catalog(catalog_data)


@pytest.fixture()
def test_app(tmp_path):
    app = create_app({"TESTING": True, "CRYPTFORGE_CATALOG": None, "CRYPTFORGE_TILE_PROPERTIES": None})
    app.instance_path = str(tmp_path)
    return app


@pytest.fixture()
def client(test_app):
    return test_app.test_client()
