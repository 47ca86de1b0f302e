import importlib
import json
import sys

import pytest

# run.py is imported as a module; start_server is patched so no socket is opened.


@pytest.fixture()
def run_module():
    if "run" in sys.modules:
        del sys.modules["run"]
    return importlib.import_module("run")


@pytest.fixture()
def fake_server(monkeypatch):
    calls = {}

    def fake_start_server(host, port, debug):
        calls.update(host=host, port=port, debug=debug)

    import cryptforge.server as server_mod

    monkeypatch.setattr(server_mod, "start_server", fake_start_server)
    return calls


def test_version_flag_outputs_version(run_module, capsys):
    from cryptforge import __version__

    with pytest.raises(SystemExit) as exc:
        run_module.parse_args(["--version"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert __version__ in out and "Cryptforge" in out


def test_default_command_is_server(run_module):
    assert run_module.parse_args([]).command == "server"


def test_server_main_invokes_start_server(monkeypatch, run_module, fake_server):
    monkeypatch.setenv("PORT", "5555")
    monkeypatch.setenv("HOST", "127.0.0.1")
    assert run_module.main(["server"]) == 0
    assert fake_server == {"host": "127.0.0.1", "port": 5555, "debug": False}


def test_server_main_debug_flag(run_module, fake_server):
    run_module.main(["server", "--debug", "--port", "6000"])
    assert fake_server["debug"] is True
    assert fake_server["port"] == 6000


def test_env_file_argument(monkeypatch, tmp_path, run_module, fake_server):
    # registered so teardown unsets whatever load_dotenv writes
    monkeypatch.setenv("PORT", "0")
    monkeypatch.delenv("PORT")
    env_file = tmp_path / ".env"
    env_file.write_text("PORT=6001\n")
    run_module.main(["--env-file", str(env_file), "server"])
    assert fake_server["port"] == 6001


def test_generate_prints_json(run_module, capsys):
    assert run_module.main(["generate", "--seed", "cli", "--width", "40", "--height", "30"]) == 0
    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    assert data["seed"] == "cli" and data["mode"] == "maze"
    assert data["width"] == 40


def test_generate_ascii_and_out_file(run_module, capsys, tmp_path):
    assert run_module.main(["generate", "--seed", "cli", "--ascii", "--width", "30", "--height", "20"]) == 0
    out = capsys.readouterr().out
    grid = [line for line in out.splitlines() if len(line) == 30 and set(line) <= set("#.+@LKS")]
    assert len(grid) == 20

    target = tmp_path / "level.json"
    assert run_module.main(["generate", "--seed", "cli", "--out", str(target)]) == 0
    assert json.loads(target.read_text())["seed"] == "cli"


def test_generate_with_catalog(run_module, tmp_path, catalog_data):
    cat = tmp_path / "catalog.json"
    cat.write_text(json.dumps(catalog_data))
    target = tmp_path / "level.json"
    assert run_module.main(["generate", "--seed", "s1", "--catalog", str(cat), "--out", str(target)]) == 0
    assert json.loads(target.read_text())["mode"] == "template"


def test_generate_bad_option_exits_nonzero(run_module, capsys):
    assert run_module.main(["generate", "--width", "0"]) == 2
    assert "width" in capsys.readouterr().err
