from domain.provenance import ContentKind, ProvenanceTracker, PROVENANCE_STORAGE_KEY
from domain.storage import MemoryStorage, SessionStorage


def test_recorded_post_is_mine_only_as_a_post():
    tracker = ProvenanceTracker(MemoryStorage())

    tracker.record_created(ContentKind.POST, "p1")

    assert tracker.was_created_by_me(ContentKind.POST, "p1")
    assert not tracker.was_created_by_me(ContentKind.COMMENT, "p1")
    assert not tracker.was_created_by_me(ContentKind.POST, "p2")


def test_unrecorded_ids_are_not_mine():
    tracker = ProvenanceTracker(MemoryStorage())

    assert not tracker.was_created_by_me(ContentKind.POST, "anything")
    assert not tracker.was_created_by_me(ContentKind.COMMENT, "anything")


def test_records_survive_a_new_tracker():
    storage = MemoryStorage()
    ProvenanceTracker(storage).record_created(ContentKind.COMMENT, "c1")

    reloaded = ProvenanceTracker(storage)

    assert reloaded.was_created_by_me(ContentKind.COMMENT, "c1")
    assert storage.value == {"posts": [], "comments": ["c1"]}


def test_duplicates_are_appended():
    tracker = ProvenanceTracker(MemoryStorage())

    tracker.record_created(ContentKind.POST, "p1")
    tracker.record_created(ContentKind.POST, "p1")

    assert tracker.snapshot().posts == ["p1", "p1"]
    assert tracker.was_created_by_me(ContentKind.POST, "p1")


def test_storage_is_loaded_once_and_lazily():
    class CountingStorage(MemoryStorage):
        loads = 0

        def load(self):
            self.loads += 1
            return super().load()

    storage = CountingStorage({"posts": ["p1"], "comments": []})
    tracker = ProvenanceTracker(storage)
    assert storage.loads == 0

    tracker.was_created_by_me(ContentKind.POST, "p1")
    tracker.was_created_by_me(ContentKind.COMMENT, "c1")

    assert storage.loads == 1


def test_cap_drops_oldest_ids():
    tracker = ProvenanceTracker(MemoryStorage(), max_entries=2)

    for post_id in ("p1", "p2", "p3"):
        tracker.record_created(ContentKind.POST, post_id)
    tracker.record_created(ContentKind.COMMENT, "c1")

    assert tracker.snapshot().posts == ["p2", "p3"]
    assert tracker.snapshot().comments == ["c1"]
    assert not tracker.was_created_by_me(ContentKind.POST, "p1")


def test_malformed_storage_is_ignored():
    assert not ProvenanceTracker(MemoryStorage("garbage")).was_created_by_me(ContentKind.POST, "p1")

    tracker = ProvenanceTracker(MemoryStorage({"posts": ["p1", 7, None], "comments": "c1"}))
    assert tracker.snapshot().posts == ["p1"]
    assert tracker.snapshot().comments == []


def test_session_storage_uses_namespaced_key():
    session = {"other": 1}
    tracker = ProvenanceTracker(SessionStorage(session, PROVENANCE_STORAGE_KEY))

    tracker.record_created(ContentKind.POST, "p1")

    assert session[PROVENANCE_STORAGE_KEY] == {"posts": ["p1"], "comments": []}
    assert session["other"] == 1
