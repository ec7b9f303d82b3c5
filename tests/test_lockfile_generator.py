"""Tests for batch lockfile generation and lockfile I/O."""

import asyncio
import json

import pytest

from cdn.client import CDNClient
from cdn.response import CDNResponse
from common.errors import LockfileError, ResolutionFailed, ValidationError
from resolver.import_map import ImportMap, load_lockfile, write_lockfile
from resolver.lockfile import FirstError, LockfileGenerator
from resolver.specifier import validate_semver
from resolver.specifier_resolver import SpecifierResolver
from resolver.url_resolver import ResolutionResult, UrlResolver
from storage.policies import PermanentCache
from storage.store import PersistentStore


class _FakeResolver:
    """Resolver stand-in that pins every specifier after a short delay."""

    def __init__(self, delay=0.0, failures=None):
        self.delay = delay
        self.failures = failures or {}
        self.calls = []

    async def resolve(self, specifier, semver, lockfile=None, allow_retry=True):
        self.calls.append(specifier)
        if self.delay:
            await asyncio.sleep(self.delay)
        if specifier in self.failures:
            raise self.failures[specifier]
        validate_semver(specifier, semver)
        pinned = lockfile.get(specifier) if lockfile is not None else None
        return ResolutionResult(body="", pinned_url=pinned or f"https://cdn/-/{specifier}@{semver}")


class TestLockfileGenerator:
    """Tests for LockfileGenerator.generate."""

    def test_resolves_every_dependency(self):
        resolver = _FakeResolver()
        generator = LockfileGenerator(resolver)

        import_map = asyncio.run(generator.generate({"react": "17.0.1", "preact": "^10.0.0"}))

        assert import_map.imports == {
            "preact": "https://cdn/-/preact@^10.0.0",
            "react": "https://cdn/-/react@17.0.1",
        }

    def test_failure_does_not_cancel_siblings(self):
        """An invalid entry surfaces its error only after the others finished."""
        resolver = _FakeResolver(delay=0.01)
        generator = LockfileGenerator(resolver)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(generator.generate({"a": "1.0.0", "b": "1 2", "c": "1.0.0"}))

        assert exc_info.value.specifier == "b"
        assert sorted(resolver.calls) == ["a", "b", "c"]
        assert generator.in_flight == 0

    def test_first_error_wins(self):
        first = ResolutionFailed(404, "https://cdn/a@1", "", "a")
        second = ResolutionFailed(500, "https://cdn/b@1", "", "b")
        resolver = _FakeResolver(failures={"a": first, "b": second})

        with pytest.raises(ResolutionFailed) as exc_info:
            asyncio.run(LockfileGenerator(resolver, concurrency=1).generate({"a": "1", "b": "1"}))

        assert exc_info.value is first

    def test_concurrency_ceiling(self):
        resolver = _FakeResolver(delay=0.01)
        generator = LockfileGenerator(resolver, concurrency=16)
        dependencies = {f"pkg{i}": "1.0.0" for i in range(100)}

        import_map = asyncio.run(generator.generate(dependencies))

        assert len(import_map) == 100
        assert 1 <= generator.peak_in_flight <= 16

    def test_custom_concurrency(self):
        resolver = _FakeResolver(delay=0.01)
        generator = LockfileGenerator(resolver, concurrency=3)

        asyncio.run(generator.generate({f"pkg{i}": "1.0.0" for i in range(10)}))

        assert generator.peak_in_flight <= 3

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            LockfileGenerator(_FakeResolver(), concurrency=0)

    def test_output_is_deterministic(self):
        dependencies = {"zeta": "1.0.0", "alpha": "2.0.0", "mid": "3.0.0"}

        first = asyncio.run(LockfileGenerator(_FakeResolver(delay=0.01)).generate(dependencies))
        reordered = dict(reversed(list(dependencies.items())))
        second = asyncio.run(LockfileGenerator(_FakeResolver()).generate(reordered))

        assert first == second
        assert list(first.imports) == ["alpha", "mid", "zeta"]

    def test_existing_pins_are_reused(self):
        lockfile = ImportMap(imports={"react": "https://cdn/-/react@v17.0.1-pinned"})

        import_map = asyncio.run(LockfileGenerator(_FakeResolver()).generate({"react": "^17"}, lockfile))

        assert import_map.imports["react"] == "https://cdn/-/react@v17.0.1-pinned"

    def test_empty_dependencies(self):
        import_map = asyncio.run(LockfileGenerator(_FakeResolver()).generate({}))
        assert import_map.imports == {}


class _ScriptedCDN(CDNClient):
    """CDN client answering every lookup with a finished build, after a short delay."""

    def __init__(self):
        super().__init__(origin="https://cdn.example.com")
        self.calls = []

    async def fetch(self, url, refresh=False):
        target = self.normalize_url(url)
        self.calls.append(target)
        await asyncio.sleep(0.01)
        name = target.rsplit("/", 1)[-1].split("@", 1)[0]
        return CDNResponse(
            url=target,
            status_code=200,
            headers={
                "x-import-status": "SUCCESS",
                "x-pinned-url": f"/-/{name}@v1.0.0-h/{name}.js",
                "cache-control": "max-age=31536000",
            },
            body="export {};",
        )


class TestLockfileGeneratorWithResolver:
    """LockfileGenerator driving the real resolver chain."""

    def test_invalid_entry_does_not_stop_lookups_for_others(self, tmp_path):
        client = _ScriptedCDN()
        store = PersistentStore(str(tmp_path / "cache"))
        resolver = SpecifierResolver(client, UrlResolver(client, PermanentCache(store)))
        generator = LockfileGenerator(resolver)
        pinned_c = "https://cdn.example.com/-/c@v1.0.0-h/c.js"
        lockfile = ImportMap(imports={"c": pinned_c})

        try:
            with pytest.raises(ValidationError) as exc_info:
                asyncio.run(generator.generate({"a": "1.0.0", "b": "1 2", "c": "1.0.0"}, lockfile))
            cached = asyncio.run(PermanentCache(store).get(pinned_c))
        finally:
            store.close()

        assert exc_info.value.specifier == "b"
        assert sorted(client.calls) == ["https://cdn.example.com/-/c@v1.0.0-h/c.js", "https://cdn.example.com/a@1.0.0"]
        assert cached is not None
        assert cached[1].pinned_url == pinned_c
        assert generator.in_flight == 0


class TestFirstError:
    def test_keeps_first(self):
        holder = FirstError()
        a, b = ValueError("a"), ValueError("b")
        assert holder.record(a) is True
        assert holder.record(b) is False
        assert holder.error is a


class TestLockfileIO:
    """Tests for reading and writing lockfiles."""

    def test_missing_lockfile_is_none(self, tmp_path):
        assert load_lockfile(str(tmp_path / "webpin.lock.json")) is None

    def test_write_then_load(self, tmp_path):
        path = str(tmp_path / "out" / "webpin.lock.json")
        write_lockfile(path, ImportMap(imports={"b": "https://cdn/b", "a": "https://cdn/a"}))

        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        assert text.endswith("\n")
        assert text.index('"a"') < text.index('"b"')
        assert json.loads(text) == {"imports": {"a": "https://cdn/a", "b": "https://cdn/b"}}

        loaded = load_lockfile(path)
        assert loaded.get("a") == "https://cdn/a"
        assert "b" in loaded

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "webpin.lock.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LockfileError):
            load_lockfile(str(path))

    def test_wrong_shape_raises(self, tmp_path):
        path = tmp_path / "webpin.lock.json"
        path.write_text(json.dumps({"imports": {"a": 1}}), encoding="utf-8")
        with pytest.raises(LockfileError) as exc_info:
            load_lockfile(str(path))
        assert "imports/a" in str(exc_info.value)

    def test_missing_imports_key_raises(self):
        with pytest.raises(LockfileError):
            ImportMap.from_dict({"scopes": {}})
