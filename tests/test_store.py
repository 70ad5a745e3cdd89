import threading
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import text
from sqlmodel import Session
from aide.db import make_engine, init_db
from aide.memory import MemoryStore, StorageError, SearchDegradedError, ValidationError
from aide.memory import salience
from aide.models.memory import Sector
from aide.search import reindex_all

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(name="engine")
def engine_fixture():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def clock():
    return Clock(T0)


@pytest.fixture
def store(engine, clock):
    return MemoryStore(engine, clock=clock)


def fts_rowids(engine, token: str) -> list[int]:
    """Rowids the FTS index itself holds for a token, bypassing the join."""
    with Session(engine) as session:
        rows = session.exec(
            text("SELECT rowid FROM memories_fts WHERE memories_fts MATCH :q"),
            params={"q": f'"{token}"'},
        ).all()
    return [r[0] for r in rows]


# ---------------------------------------------------------------------------
# insert
# ---------------------------------------------------------------------------
def test_insert_defaults(store):
    m = store.insert("chat-1", "User likes Rust", Sector.SEMANTIC)
    assert m.id is not None
    assert m.owner == "chat-1"
    assert m.sector == Sector.SEMANTIC
    assert m.salience == pytest.approx(1.0)
    assert m.created_at == T0
    assert m.accessed_at == m.created_at
    assert m.topic_key is None


def test_insert_accepts_sector_value_and_topic(store):
    m = store.insert("chat-1", "Discussed project planning", "episodic", topic_key="planning")
    loaded = store.get(m.id)
    assert loaded.sector == Sector.EPISODIC
    assert loaded.topic_key == "planning"


def test_insert_ids_increase(store):
    a = store.insert("chat-1", "first", Sector.EPISODIC)
    b = store.insert("chat-1", "second", Sector.EPISODIC)
    assert b.id > a.id


@pytest.mark.parametrize("content", ["", "   ", "\n"])
def test_insert_rejects_empty_content(store, content):
    with pytest.raises(ValidationError):
        store.insert("chat-1", content, Sector.SEMANTIC)
    assert store.count() == 0


def test_insert_rejects_unknown_sector(store):
    with pytest.raises(ValidationError):
        store.insert("chat-1", "something", "procedural")
    # still a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        store.insert("chat-1", "something", "procedural")


def test_insert_rejects_missing_owner(store):
    with pytest.raises(ValidationError):
        store.insert("", "something", Sector.SEMANTIC)


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------
def test_search_round_trip_case_insensitive(store):
    m = store.insert("chat-1", "User likes Rust", Sector.SEMANTIC)
    results = store.search_by_keywords("chat-1", ["rust"], limit=3)
    assert [r.id for r in results] == [m.id]


def test_search_prefix_match(store):
    m = store.insert("chat-1", "Prefers TypeScript for frontends", Sector.SEMANTIC)
    results = store.search_by_keywords("chat-1", ["type"], limit=3)
    assert [r.id for r in results] == [m.id]


def test_search_or_semantics(store):
    a = store.insert("chat-1", "drinks coffee every morning", Sector.SEMANTIC)
    b = store.insert("chat-1", "walks the dog at noon", Sector.EPISODIC)
    store.insert("chat-1", "nothing relevant here", Sector.EPISODIC)
    results = store.search_by_keywords("chat-1", ["coffee", "dog"], limit=10)
    assert {r.id for r in results} == {a.id, b.id}


def test_search_ranks_better_match_first(store):
    weak = store.insert("chat-1", "python mentioned once among many other words in a long note", Sector.EPISODIC)
    strong = store.insert("chat-1", "python python python", Sector.SEMANTIC)
    results = store.search_by_keywords("chat-1", ["python"], limit=3)
    assert [r.id for r in results] == [strong.id, weak.id]


def test_search_respects_limit(store):
    for i in range(5):
        store.insert("chat-1", f"note {i} about gardening", Sector.EPISODIC)
    assert len(store.search_by_keywords("chat-1", ["gardening"], limit=3)) == 3


def test_search_no_match_returns_empty_list(store):
    store.insert("chat-1", "User likes Rust", Sector.SEMANTIC)
    assert store.search_by_keywords("chat-1", ["haskell"], limit=3) == []


def test_search_without_keywords_returns_empty_list(store):
    store.insert("chat-1", "User likes Rust", Sector.SEMANTIC)
    assert store.search_by_keywords("chat-1", [], limit=3) == []


def test_search_treats_operator_words_as_text(store):
    m = store.insert("chat-1", "NOT a problem, NEAR the station", Sector.EPISODIC)
    results = store.search_by_keywords("chat-1", ["NOT", "NEAR"], limit=3)
    assert [r.id for r in results] == [m.id]


def test_search_is_scoped_to_owner(store):
    store.insert("chat-2", "User likes Rust", Sector.SEMANTIC)
    assert store.search_by_keywords("chat-1", ["rust"], limit=3) == []


# ---------------------------------------------------------------------------
# recent / for_owner
# ---------------------------------------------------------------------------
def test_recent_newest_first(store, clock):
    a = store.insert("chat-1", "first", Sector.EPISODIC)
    clock.advance(minutes=1)
    b = store.insert("chat-1", "second", Sector.EPISODIC)
    assert [m.id for m in store.recent("chat-1", 5)] == [b.id, a.id]

    clock.advance(minutes=1)
    store.reinforce(a.id)
    assert [m.id for m in store.recent("chat-1", 5)] == [a.id, b.id]


def test_recent_limit_and_owner_scope(store):
    for i in range(4):
        store.insert("chat-1", f"memory {i}", Sector.EPISODIC)
    store.insert("chat-2", "someone else", Sector.EPISODIC)
    recent = store.recent("chat-1", 2)
    assert len(recent) == 2
    assert all(m.owner == "chat-1" for m in recent)
    assert store.recent("chat-3", 5) == []


def test_for_owner_orders_by_salience_then_recency(store, clock):
    low = store.insert("chat-1", "low salience memory", Sector.EPISODIC)
    clock.advance(minutes=1)
    high = store.insert("chat-1", "high salience memory", Sector.SEMANTIC)
    clock.advance(minutes=1)
    newest = store.insert("chat-1", "newest memory", Sector.EPISODIC)
    store.reinforce(high.id)

    ordered = [m.id for m in store.for_owner("chat-1")]
    assert ordered == [high.id, newest.id, low.id]


# ---------------------------------------------------------------------------
# reinforce
# ---------------------------------------------------------------------------
def test_reinforce_bumps_salience_and_access_time(store, clock):
    m = store.insert("chat-1", "Important fact", Sector.SEMANTIC)
    clock.advance(hours=3)
    store.reinforce(m.id)
    after = store.get(m.id)
    assert after.salience == pytest.approx(1.1)
    assert after.accessed_at == T0 + timedelta(hours=3)
    assert after.created_at == T0


def test_reinforce_caps_at_ceiling(store):
    m = store.insert("chat-1", "Very important", Sector.SEMANTIC)
    for _ in range(60):
        store.reinforce(m.id)
    assert store.get(m.id).salience == pytest.approx(salience.MAX_SALIENCE)
    store.reinforce(m.id)
    assert store.get(m.id).salience == pytest.approx(salience.MAX_SALIENCE)


def test_reinforce_many_counts_each_id_once(store):
    m = store.insert("chat-1", "fact", Sector.SEMANTIC)
    store.reinforce_many([m.id, m.id])
    assert store.get(m.id).salience == pytest.approx(1.1)


def test_reinforce_unknown_id_is_noop(store):
    store.reinforce(12345)
    assert store.count() == 0


def test_concurrent_reinforce_loses_no_increment(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'aide.db'}")
    init_db(engine)
    store = MemoryStore(engine)
    m = store.insert("chat-1", "frequently recalled fact", Sector.SEMANTIC)

    start = threading.Barrier(6)
    errors = []

    def worker():
        start.wait()
        try:
            for _ in range(5):
                store.reinforce(m.id)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert store.get(m.id).salience == pytest.approx(4.0)
    engine.dispose()


# ---------------------------------------------------------------------------
# decay_and_prune
# ---------------------------------------------------------------------------
def test_decay_skips_memories_inside_grace_window(store, clock):
    m = store.insert("chat-1", "fresh memory", Sector.EPISODIC)
    clock.advance(hours=23)
    result = store.decay_and_prune()
    assert result.decayed == 0
    assert store.get(m.id).salience == pytest.approx(1.0)


def test_decay_applies_once_past_grace_window(store, clock):
    m = store.insert("chat-1", "older memory", Sector.EPISODIC)
    clock.advance(hours=25)
    result = store.decay_and_prune()
    assert result.decayed == 1
    assert result.pruned == 0
    assert store.get(m.id).salience == pytest.approx(0.98)


def test_decay_uses_last_access_not_creation(store, clock):
    m = store.insert("chat-1", "revisited memory", Sector.SEMANTIC)
    clock.advance(days=3)
    store.reinforce(m.id)
    clock.advance(hours=1)
    store.decay_and_prune()
    assert store.get(m.id).salience == pytest.approx(1.1)


def test_untouched_memory_is_pruned_after_enough_sweeps(engine, store, clock):
    m = store.insert("chat-1", "zebra crossing story", Sector.EPISODIC)
    keep = salience.sweeps_until_expiry()
    for _ in range(keep - 1):
        clock.advance(days=1, minutes=1)
        store.decay_and_prune()
    survivor = store.get(m.id)
    assert survivor is not None
    assert survivor.salience >= salience.PRUNE_FLOOR

    clock.advance(days=1, minutes=1)
    result = store.decay_and_prune()
    assert result.pruned == 1
    assert store.get(m.id) is None
    assert store.recent("chat-1", 5) == []
    assert store.for_owner("chat-1") == []
    assert store.search_by_keywords("chat-1", ["zebra"], limit=3) == []
    assert fts_rowids(engine, "zebra") == []


def test_sweep_is_skipped_while_another_is_running(store, clock):
    m = store.insert("chat-1", "older memory", Sector.EPISODIC)
    clock.advance(days=2)
    with store._sweep_lock:
        assert store.decay_and_prune() is None
    assert store.get(m.id).salience == pytest.approx(1.0)

    assert store.decay_and_prune().decayed == 1
    assert store.get(m.id).salience == pytest.approx(0.98)


def test_count_ignores_rows_below_floor(engine, store):
    kept = store.insert("chat-1", "kept memory", Sector.SEMANTIC)
    faded = store.insert("chat-1", "faded memory", Sector.EPISODIC)
    with Session(engine) as session:
        session.exec(
            text("UPDATE memories SET salience = 0.05 WHERE id = :id"),
            params={"id": faded.id},
        )
        session.commit()
    assert store.count() == 1
    assert store.count("chat-1") == 1
    assert [m.id for m in store.for_owner("chat-1")] == [kept.id]


def test_salience_stays_in_bounds(store, clock):
    a = store.insert("chat-1", "often used", Sector.SEMANTIC)
    b = store.insert("chat-1", "never used", Sector.EPISODIC)
    for _ in range(80):
        store.reinforce(a.id)
        clock.advance(days=1, minutes=1)
        store.decay_and_prune()
        for m in store.for_owner("chat-1", 10):
            assert salience.MIN_SALIENCE <= m.salience <= salience.MAX_SALIENCE
    assert store.get(b.id).salience < store.get(a.id).salience


# ---------------------------------------------------------------------------
# clear / index maintenance
# ---------------------------------------------------------------------------
def test_clear_removes_owner_memories_and_index(engine, store):
    m = store.insert("chat-1", "walrus facts", Sector.SEMANTIC)
    other = store.insert("chat-2", "walrus trivia", Sector.SEMANTIC)
    assert store.clear("chat-1") == 1
    assert store.get(m.id) is None
    assert fts_rowids(engine, "walrus") == [other.id]


def test_clear_owner_with_sql_characters(engine, store):
    owner = "chat' OR '1'='1"
    store.insert(owner, "walrus facts", Sector.SEMANTIC)
    other = store.insert("chat-2", "walrus trivia", Sector.SEMANTIC)
    assert store.clear(owner) == 1
    assert store.count() == 1
    assert fts_rowids(engine, "walrus") == [other.id]


def test_reindex_restores_search(engine, store):
    m = store.insert("chat-1", "User likes Rust", Sector.SEMANTIC)
    reindex_all(engine)
    assert [r.id for r in store.search_by_keywords("chat-1", ["rust"], 3)] == [m.id]


# ---------------------------------------------------------------------------
# storage failures
# ---------------------------------------------------------------------------
def test_storage_failures_are_surfaced():
    bare = MemoryStore(make_engine("sqlite://"))  # no tables
    with pytest.raises(StorageError):
        bare.recent("chat-1", 5)
    with pytest.raises(StorageError):
        bare.insert("chat-1", "content", Sector.SEMANTIC)
    with pytest.raises(StorageError):
        bare.decay_and_prune()


def test_search_failure_is_marked_degraded():
    bare = MemoryStore(make_engine("sqlite://"))
    with pytest.raises(SearchDegradedError) as excinfo:
        bare.search_by_keywords("chat-1", ["rust"], 3)
    assert isinstance(excinfo.value, StorageError)
