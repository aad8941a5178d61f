"""
Test Configuration
==================

Pytest fixtures shared by the test modules. Every test gets its own
in-memory SQLite database, store and engine.
"""

import random

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pixelgrid.db_models  # noqa: F401
from pixelgrid.config import FRAME_BYTE_LENGTH
from pixelgrid.database import Base
from pixelgrid.errors import PersistenceFailure
from pixelgrid.main import create_app
from pixelgrid.store import AnimationStore
from pixelgrid.sync_engine import SyncEngine
from pixelgrid.transfer import frame_to_wire


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


class FlakyStore(AnimationStore):
    """Store whose writes can be switched to fail."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.fail_metadata = False
        self.fail_frames = False

    def replace_metadata_array(self, metadata):
        if self.fail_metadata:
            raise PersistenceFailure("metadata write refused")
        super().replace_metadata_array(metadata)

    def insert_frame(self, animation_id, frame_id, data):
        if self.fail_frames:
            raise PersistenceFailure(f"frame write refused: {frame_id}")
        super().insert_frame(animation_id, frame_id, data)


@pytest.fixture
def store(session_factory):
    return FlakyStore(session_factory)


@pytest.fixture
def engine(store):
    return SyncEngine(store, seed_on_empty=False)


@pytest.fixture
def client(store):
    """TestClient for an app backed by the test store, without seed data."""
    app = create_app(store=store, seed_on_empty=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_frame():
    """Return a factory for deterministic pseudo-random frame buffers."""

    def _make_frame(seed: int) -> bytes:
        rng = random.Random(seed)
        return bytes(rng.randrange(256) for _ in range(FRAME_BYTE_LENGTH))

    return _make_frame


@pytest.fixture
def make_animation():
    """Return a factory for wire-format animation objects."""

    def _make_animation(animation_id, frames, frame_duration=100, repeat_count=0):
        return {
            "animationID": animation_id,
            "frameDuration": frame_duration,
            "repeatCount": repeat_count,
            "frames": [frame_to_wire(frame) for frame in frames],
        }

    return _make_animation


@pytest.fixture
def two_animation_payload(make_frame, make_animation):
    """Two animations with 3 and 1 frames."""
    return [
        make_animation("wave", [make_frame(1), make_frame(2), make_frame(3)]),
        make_animation("blink", [make_frame(4)], frame_duration=250, repeat_count=3),
    ]
