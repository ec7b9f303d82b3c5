"""Tests for argument parsing and the webpin entry point."""

import json

import pytest

import webpin
from args import parse_args
from common.errors import BuildFailed, NetworkError
from constants import Constants, ExitCodes
from resolver.import_map import ImportMap


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    # main() exports the log level; setenv first so it is restored afterwards
    monkeypatch.setenv(Constants.ENV_LOG_LEVEL, "INFO")
    monkeypatch.delenv(Constants.ENV_ORIGIN, raising=False)
    monkeypatch.delenv(Constants.ENV_CACHE_DIR, raising=False)
    monkeypatch.chdir(tmp_path)


def _write_config(tmp_path, deps):
    lines = ["webDependencies:"] + [f"  '{name}': '{semver}'" for name, semver in deps.items()]
    path = tmp_path / Constants.CONFIG_NAME
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_parse_lock_args():
    args = parse_args(["lock", "-o", "out.json", "-j", "4", "--origin", "https://cdn.example.com"])
    assert args.COMMAND == "lock"
    assert args.LOCKFILE == "out.json"
    assert args.CONCURRENCY == 4
    assert args.ORIGIN == "https://cdn.example.com"
    assert args.LOG_LEVEL == "INFO"


def test_parse_lookup_args():
    args = parse_args(["lookup", "@scope/pkg/sub", "-s", "^1.0.0"])
    assert args.SPECIFIER == "@scope/pkg/sub"
    assert args.SEMVER == "^1.0.0"


def test_command_required():
    with pytest.raises(SystemExit):
        parse_args([])


def test_lock_writes_lockfile(monkeypatch, tmp_path):
    _write_config(tmp_path, {"react": "17.0.1"})
    seen = {}

    async def _fake_run_lock(config, lockfile=None):
        seen["deps"] = dict(config.web_dependencies)
        seen["lockfile"] = lockfile
        return ImportMap(imports={"react": "https://cdn.example.com/-/react@v17.0.1-h/react.js"})

    monkeypatch.setattr(webpin, "run_lock", _fake_run_lock)

    with pytest.raises(SystemExit) as exc_info:
        webpin.main(["lock"])

    assert exc_info.value.code == ExitCodes.SUCCESS.value
    assert seen == {"deps": {"react": "17.0.1"}, "lockfile": None}
    with open(tmp_path / Constants.LOCKFILE_NAME, "r", encoding="utf-8") as f:
        assert json.load(f)["imports"]["react"].endswith("react.js")


def test_lock_passes_existing_lockfile(monkeypatch, tmp_path):
    (tmp_path / "old.json").write_text(json.dumps({"imports": {"a": "https://cdn/a"}}), encoding="utf-8")
    seen = {}

    async def _fake_run_lock(config, lockfile=None):
        seen["lockfile"] = lockfile
        return lockfile

    monkeypatch.setattr(webpin, "run_lock", _fake_run_lock)

    with pytest.raises(SystemExit):
        webpin.main(["lock", "-o", "old.json"])

    assert seen["lockfile"].get("a") == "https://cdn/a"


def test_resolution_error_exit_code(monkeypatch):
    async def _fake_run_lock(config, lockfile=None):
        raise BuildFailed("Failed to build: pkg@1.0.0", "pkg")

    monkeypatch.setattr(webpin, "run_lock", _fake_run_lock)

    with pytest.raises(SystemExit) as exc_info:
        webpin.main(["lock"])

    assert exc_info.value.code == ExitCodes.RESOLUTION_ERROR.value


def test_network_error_exit_code(monkeypatch):
    async def _fake_run_lookup(config, specifier, semver):
        raise NetworkError("https://cdn/react", "refused", specifier)

    monkeypatch.setattr(webpin, "run_lookup", _fake_run_lookup)

    with pytest.raises(SystemExit) as exc_info:
        webpin.main(["lookup", "react"])

    assert exc_info.value.code == ExitCodes.CONNECTION_ERROR.value


def test_bad_config_exit_code(tmp_path):
    (tmp_path / "bad.yaml").write_text("concurrency: -1\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc_info:
        webpin.main(["lock", "-c", "bad.yaml"])

    assert exc_info.value.code == ExitCodes.FILE_ERROR.value


def test_lookup_prints_json(monkeypatch, capsys):
    async def _fake_run_lookup(config, specifier, semver):
        return {"specifier": specifier, "pinnedUrl": "/-/react.js", "semver": semver}

    monkeypatch.setattr(webpin, "run_lookup", _fake_run_lookup)

    with pytest.raises(SystemExit):
        webpin.main(["lookup", "react", "-s", "17"])

    out = json.loads(capsys.readouterr().out)
    assert out == {"specifier": "react", "pinnedUrl": "/-/react.js", "semver": "17"}


def test_clear_cache_command(monkeypatch, capsys, tmp_path):
    cache_dir = tmp_path / "cache"

    with pytest.raises(SystemExit) as exc_info:
        webpin.main(["clear-cache", "--cache-dir", str(cache_dir)])

    assert exc_info.value.code == ExitCodes.SUCCESS.value
    assert "Removed 0 cached resources." in capsys.readouterr().out


def test_zero_concurrency_exit_code(monkeypatch):
    async def _fake_run_lock(config, lockfile=None):
        raise AssertionError("lock must not run with an invalid concurrency")

    monkeypatch.setattr(webpin, "run_lock", _fake_run_lock)

    with pytest.raises(SystemExit) as exc_info:
        webpin.main(["lock", "--concurrency", "0"])

    assert exc_info.value.code == ExitCodes.FILE_ERROR.value
