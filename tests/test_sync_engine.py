"""
Tests for the synchronization engine
"""

import threading

import pytest

from pixelgrid.config import FRAME_ID_LENGTH
from pixelgrid.errors import CacheInconsistency, NotFound, ValidationFailed
from pixelgrid.models import Metadata, ReplaceStatus
from pixelgrid.sync_engine import CacheSnapshot, SyncEngine


def fid(char):
    return char * FRAME_ID_LENGTH


def test_replace_all(engine, store, two_animation_payload, make_frame):
    result = engine.replace_all(two_animation_payload)

    assert result.status is ReplaceStatus.PERSISTED
    assert result.animation_count == 2
    assert result.frame_count == 4

    metadata = engine.get_metadata()
    assert [m.animation_id for m in metadata] == ["wave", "blink"]
    assert [m.total_frames for m in metadata] == [3, 1]
    assert [len(m.frame_order) for m in metadata] == [3, 1]
    assert metadata[1].frame_duration == 250
    assert metadata[1].repeat_count == 3

    expected = [make_frame(1), make_frame(2), make_frame(3)]
    for frame_id, data in zip(metadata[0].frame_order, expected):
        frame = engine.get_frame(frame_id)
        assert len(frame_id) == FRAME_ID_LENGTH
        assert frame.animation_id == "wave"
        assert frame.data == data
    assert engine.get_frame(metadata[1].frame_order[0]).data == make_frame(4)


def test_replace_all_persists(engine, store, two_animation_payload):
    engine.replace_all(two_animation_payload)

    assert store.fetch_metadata_array() == engine.get_metadata()
    for entry in engine.get_metadata():
        for frame_id in entry.frame_order:
            assert store.fetch_frame(frame_id) == engine.get_frame(frame_id).data


def test_replace_all_drops_previous_animations(engine, two_animation_payload, make_frame, make_animation):
    engine.replace_all(two_animation_payload)
    old_ids = [f for m in engine.get_metadata() for f in m.frame_order]

    engine.replace_all([make_animation("solo", [make_frame(9)])])

    assert [m.animation_id for m in engine.get_metadata()] == ["solo"]
    assert len(engine.snapshot.frames) == 1
    for frame_id in old_ids:
        with pytest.raises(NotFound):
            engine.get_frame(frame_id)


def test_invalid_payload_leaves_cache_unchanged(engine, store, two_animation_payload, make_frame, make_animation):
    engine.replace_all([make_animation("original", [make_frame(1)])])
    snapshot_before = engine.snapshot
    stored_before = store.fetch_metadata_array()

    # Frame 1 of animation 2 is one pixel short
    second = make_animation("second", [make_frame(2), make_frame(3)])
    del second["frames"][1]["255"]
    payload = [make_animation("first", [make_frame(4)]), second]

    with pytest.raises(ValidationFailed):
        engine.replace_all(payload)

    assert engine.snapshot is snapshot_before
    assert [m.animation_id for m in engine.get_metadata()] == ["original"]
    assert store.fetch_metadata_array() == stored_before


def test_colliding_frame_ids_are_regenerated(store, make_frame, make_animation):
    ids = iter([fid("a"), fid("a"), fid("b")])
    engine = SyncEngine(store, id_factory=lambda: next(ids), seed_on_empty=False)

    engine.replace_all([make_animation("anim", [make_frame(1), make_frame(2)])])

    assert engine.get_metadata()[0].frame_order == [fid("a"), fid("b")]


def test_new_ids_avoid_outgoing_cache(store, make_frame, make_animation):
    ids = iter([fid("a"), fid("a"), fid("c")])
    engine = SyncEngine(store, id_factory=lambda: next(ids), seed_on_empty=False)

    engine.replace_all([make_animation("one", [make_frame(1)])])
    engine.replace_all([make_animation("two", [make_frame(2)])])

    assert engine.get_metadata()[0].frame_order == [fid("c")]


def test_get_frame_unknown(engine):
    with pytest.raises(NotFound):
        engine.get_frame(fid("f"))


def test_get_metadata_checks_frame_id_length(engine):
    bad = Metadata.model_construct(
        animation_id="bad",
        frame_duration=100,
        repeat_count=0,
        total_frames=1,
        frame_order=["x" * (FRAME_ID_LENGTH + 1)],
    )
    engine._snapshot = CacheSnapshot(metadata=(bad,))

    with pytest.raises(CacheInconsistency):
        engine.get_metadata()


def test_metadata_persistence_failure_keeps_cache(engine, store, two_animation_payload):
    store.fail_metadata = True

    result = engine.replace_all(two_animation_payload)

    assert result.status is ReplaceStatus.APPLIED_NOT_PERSISTED
    assert result.metadata_persisted is False
    assert result.failed_frame_ids == []
    assert result.error
    assert len(engine.get_metadata()) == 2
    assert store.fetch_metadata_array() == []


def test_frame_persistence_failure_keeps_cache(engine, store, two_animation_payload):
    store.fail_frames = True

    result = engine.replace_all(two_animation_payload)

    assert result.status is ReplaceStatus.APPLIED_NOT_PERSISTED
    assert result.metadata_persisted is True
    assert sorted(result.failed_frame_ids) == sorted(engine.snapshot.frames)
    assert len(engine.snapshot.frames) == 4


def test_initialize_loads_store(store, make_frame):
    store.replace_metadata_array(
        [
            Metadata(
                animation_id="stored",
                frame_duration=100,
                repeat_count=0,
                total_frames=2,
                frame_order=[fid("1"), fid("2")],
            )
        ]
    )
    store.insert_frame("stored", fid("1"), make_frame(1))
    store.insert_frame("stored", fid("2"), make_frame(2))

    engine = SyncEngine(store, seed_on_empty=False)
    engine.initialize()

    assert [m.animation_id for m in engine.get_metadata()] == ["stored"]
    assert engine.get_frame(fid("2")).data == make_frame(2)


def test_initialize_missing_frame_is_fatal(store, make_frame):
    store.replace_metadata_array(
        [
            Metadata(
                animation_id="stored",
                frame_duration=100,
                repeat_count=0,
                total_frames=2,
                frame_order=[fid("1"), fid("2")],
            )
        ]
    )
    store.insert_frame("stored", fid("1"), make_frame(1))

    engine = SyncEngine(store, seed_on_empty=False)
    with pytest.raises(CacheInconsistency) as exc_info:
        engine.initialize()

    assert exc_info.value.details["frame_id"] == fid("2")
    assert engine.get_metadata() == []
    assert len(engine.snapshot.frames) == 0


def test_initialize_frame_referenced_twice_is_fatal(store, make_frame):
    store.replace_metadata_array(
        [
            Metadata(
                animation_id=name,
                frame_duration=100,
                repeat_count=0,
                total_frames=1,
                frame_order=[fid("1")],
            )
            for name in ("one", "two")
        ]
    )
    store.insert_frame("one", fid("1"), make_frame(1))

    with pytest.raises(CacheInconsistency):
        SyncEngine(store, seed_on_empty=False).initialize()


def test_initialize_corrupt_frame_is_fatal(store):
    store.replace_metadata_array(
        [
            Metadata(
                animation_id="stored",
                frame_duration=100,
                repeat_count=0,
                total_frames=1,
                frame_order=[fid("1")],
            )
        ]
    )
    store.insert_frame("stored", fid("1"), bytes(10))

    with pytest.raises(CacheInconsistency):
        SyncEngine(store, seed_on_empty=False).initialize()


def test_initialize_seeds_empty_store(store):
    engine = SyncEngine(store, seed_on_empty=True)
    engine.initialize()

    metadata = engine.get_metadata()
    assert [m.animation_id for m in metadata] == ["gradient", "checker"]
    assert store.fetch_metadata_array() == metadata
    for entry in metadata:
        for frame_id in entry.frame_order:
            assert store.fetch_frame(frame_id) == engine.get_frame(frame_id).data


def test_initialize_without_seeding(engine):
    engine.initialize()

    assert engine.get_metadata() == []


def test_concurrent_replaces_never_tear(engine, make_frame, make_animation):
    """Readers only ever see snapshots whose metadata and frames agree."""
    payloads = [
        [make_animation(f"anim{n}", [make_frame(n + i) for i in range(n + 1)])]
        for n in range(6)
    ]
    errors = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            snapshot = engine.snapshot
            referenced = [f for m in snapshot.metadata for f in m.frame_order]
            if sorted(referenced) != sorted(snapshot.frames):
                errors.append(snapshot)

    def writer(payload):
        engine.replace_all(payload)

    reader_thread = threading.Thread(target=reader)
    reader_thread.start()
    writers = [threading.Thread(target=writer, args=(p,)) for p in payloads]
    for thread in writers:
        thread.start()
    for thread in writers:
        thread.join()
    done.set()
    reader_thread.join()

    assert errors == []
    final = engine.get_metadata()
    assert len(final) == 1
    assert final[0].total_frames == len(engine.snapshot.frames)
