import json

from cache import SCHEMA_VERSION, ResultCache, cache_key
from reporting import empty_report

DAY = 86400


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_get_returns_stored_report():
    cache = ResultCache()
    report = empty_report("alice")

    cache.set("alice", "fp1", report)

    assert cache.get("alice", "fp1") == report
    assert cache.stats()["hits"] == 1


def test_subject_lookup_is_case_insensitive():
    cache = ResultCache()
    cache.set("Alice", "fp1", empty_report("Alice"))

    assert cache.get("alice", "fp1") is not None
    assert cache_key(" Alice ", "fp1") == "alice:fp1"


def test_new_fingerprint_misses_and_purges_old_entry():
    cache = ResultCache()
    cache.set("alice", "fp1", empty_report("alice"))

    assert cache.get("alice", "fp2") is None
    assert cache.get("alice", "fp1") is None
    stats = cache.stats()
    assert stats["total"] == 0
    assert stats["misses"] == 2


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=7 * DAY, clock=clock)
    cache.set("alice", "fp1", empty_report("alice"))

    clock.now += 6 * DAY
    assert cache.get("alice", "fp1") is not None

    clock.now += 2 * DAY
    assert cache.get("alice", "fp1") is None


def test_oldest_entries_are_evicted():
    clock = FakeClock()
    cache = ResultCache(max_entries=2, clock=clock)
    for name in ("a", "b", "c"):
        cache.set(name, "fp", empty_report(name))
        clock.now += 1

    assert cache.get("a", "fp") is None
    assert cache.get("b", "fp") is not None
    assert cache.get("c", "fp") is not None


def test_clear_one_subject_and_all():
    cache = ResultCache()
    cache.set("alice", "fp", empty_report("alice"))
    cache.set("bob", "fp", empty_report("bob"))

    assert cache.clear("ALICE") == 1
    assert cache.get("bob", "fp") is not None
    assert cache.clear_all() == 1
    assert cache.stats() == {"total": 0, "valid": 0, "expired": 0, "hits": 0, "misses": 0, "hit_rate": 0.0}


def test_persists_across_instances(tmp_path):
    path = tmp_path / "cache.json"
    with ResultCache(path) as cache:
        cache.set("alice", "fp1", empty_report("alice"))

    data = json.loads(path.read_text())
    assert data["schemaVersion"] == SCHEMA_VERSION
    assert "alice:fp1" in data["entries"]

    reloaded = ResultCache(path)
    report = reloaded.get("alice", "fp1")
    assert report is not None
    assert report.subject == "alice"


def test_schema_mismatch_discards_store(tmp_path):
    path = tmp_path / "cache.json"
    with ResultCache(path, schema_version="0") as cache:
        cache.set("alice", "fp1", empty_report("alice"))

    reloaded = ResultCache(path, schema_version=SCHEMA_VERSION)

    assert reloaded.stats()["total"] == 0
    assert reloaded.get("alice", "fp1") is None


def test_unreadable_file_starts_empty(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("not json at all")

    assert ResultCache(path).stats()["total"] == 0
