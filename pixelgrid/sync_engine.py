"""
Synchronization engine - owner of the in-memory animation cache.

The cache is a single immutable CacheSnapshot (frames by ID plus ordered
metadata). Writers build a complete new snapshot and publish it with one
reference assignment, so readers see either the old state or the new one,
never a mix. Writers (initialize, replace_all) are serialized by a lock
that is held through the persistence sweep.

Known gap: if persisting fails after the swap, the in-memory state is kept
and the store diverges from it until the next successful replace. The
result of replace_all reports this as APPLIED_NOT_PERSISTED.
"""

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from pixelgrid.config import FRAME_ID_LENGTH, SEED_ON_EMPTY
from pixelgrid.errors import (
    CacheInconsistency,
    InvalidLength,
    NotFound,
    PersistenceFailure,
)
from pixelgrid.identifiers import generate
from pixelgrid.models import (
    Frame,
    IncomingAnimation,
    Metadata,
    ReplaceResult,
    ReplaceStatus,
)
from pixelgrid.seed import build_seed
from pixelgrid.store import AnimationStore
from pixelgrid.validation import validate_animations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheSnapshot:
    """One consistent view of all frames and metadata."""

    frames: Mapping[str, Frame] = field(
        default_factory=lambda: MappingProxyType({})
    )
    metadata: Tuple[Metadata, ...] = ()


class SyncEngine:
    """Keeps the animation cache and the persisted store in step."""

    def __init__(
        self,
        store: AnimationStore,
        id_factory: Callable[[], str] = generate,
        seed_on_empty: bool = SEED_ON_EMPTY,
    ):
        """
        Args:
            store: The persisted store collaborator.
            id_factory: Produces candidate frame IDs of FRAME_ID_LENGTH.
            seed_on_empty: Write seed animations if the store has no metadata.
        """
        self.store = store
        self._id_factory = id_factory
        self._seed_on_empty = seed_on_empty
        self._write_lock = threading.Lock()
        self._snapshot = CacheSnapshot()

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    def initialize(self) -> None:
        """
        Load the cache from the store, seeding an empty store first.

        Raises:
            CacheInconsistency: if metadata references a frame the store
                cannot provide. The cache is left untouched.
            PersistenceFailure: if the store cannot be read or seeded.
        """
        with self._write_lock:
            logger.info("Initializing animation cache from database")
            metadata = self.store.fetch_metadata_array()

            if not metadata and self._seed_on_empty:
                metadata = self._seed_store()

            frames: Dict[str, Frame] = {}
            for entry in metadata:
                for position, frame_id in enumerate(entry.frame_order):
                    if frame_id in frames:
                        raise CacheInconsistency(
                            f"Frame {frame_id} is referenced by more than one "
                            f"animation",
                            details={
                                "frame_id": frame_id,
                                "animation_id": entry.animation_id,
                            },
                        )

                    data = self.store.fetch_frame(frame_id)
                    if data is None:
                        raise CacheInconsistency(
                            f"Could not find frame {position} ({frame_id}) of "
                            f"animation {entry.animation_id}",
                            details={
                                "frame_id": frame_id,
                                "animation_id": entry.animation_id,
                                "position": position,
                            },
                        )

                    try:
                        frames[frame_id] = Frame(frame_id, entry.animation_id, data)
                    except InvalidLength as e:
                        raise CacheInconsistency(e.message, details=e.details) from e

                logger.debug(
                    f"Loaded {entry.total_frames} frames of animation "
                    f"{entry.animation_id}"
                )

            self._snapshot = CacheSnapshot(
                frames=MappingProxyType(frames), metadata=tuple(metadata)
            )

        logger.info(
            f"Animation cache initialized: {len(metadata)} animations, "
            f"{len(frames)} frames"
        )

    def _seed_store(self) -> List[Metadata]:
        seed_metadata, seed_frames = build_seed()
        logger.info(
            f"No metadata found in database. Inserting {len(seed_metadata)} "
            f"seed animations"
        )
        self.store.replace_metadata_array(seed_metadata)

        # Re-read so the cache is built from what the store actually holds
        metadata = self.store.fetch_metadata_array()
        for entry in metadata:
            buffers = seed_frames.get(entry.animation_id, [])
            for frame_id, data in zip(entry.frame_order, buffers):
                self.store.insert_frame(entry.animation_id, frame_id, data)
        return metadata

    def replace_all(self, payload: Any) -> ReplaceResult:
        """
        Replace every animation with the ones in a client payload.

        The payload is validated completely before anything changes. Frame
        IDs are always assigned here; client IDs are ignored.

        Raises:
            ValidationFailed: if the payload is malformed. Nothing is applied.
        """
        animations = validate_animations(payload)

        with self._write_lock:
            snapshot = self._build_snapshot(animations)
            self._snapshot = snapshot

            first = snapshot.metadata[0]
            logger.info(
                f"Replaced cache with {len(snapshot.metadata)} animations, "
                f"{len(snapshot.frames)} frames (first: {first.animation_id}, "
                f"duration {first.frame_duration}, repeat {first.repeat_count}, "
                f"{first.total_frames} frames)"
            )

            return self._persist(snapshot)

    def _build_snapshot(self, animations: List[IncomingAnimation]) -> CacheSnapshot:
        # New IDs must not collide with the outgoing cache either
        taken = set(self._snapshot.frames)
        frames: Dict[str, Frame] = {}
        metadata = []

        for animation in animations:
            frame_order = []
            for data in animation.frames:
                frame_id = self._new_frame_id(taken)
                taken.add(frame_id)
                frames[frame_id] = Frame(frame_id, animation.animation_id, data)
                frame_order.append(frame_id)

            metadata.append(
                Metadata(
                    animation_id=animation.animation_id,
                    frame_duration=animation.frame_duration,
                    repeat_count=animation.repeat_count,
                    total_frames=len(frame_order),
                    frame_order=frame_order,
                )
            )

        return CacheSnapshot(frames=MappingProxyType(frames), metadata=tuple(metadata))

    def _new_frame_id(self, taken: set) -> str:
        frame_id = self._id_factory()
        while frame_id in taken:
            frame_id = self._id_factory()
        return frame_id

    def _persist(self, snapshot: CacheSnapshot) -> ReplaceResult:
        metadata_persisted = True
        failed_frame_ids = []

        try:
            self.store.replace_metadata_array(snapshot.metadata)
        except PersistenceFailure as e:
            metadata_persisted = False
            logger.error(f"Error replacing metadata in database: {e.message}")

        for frame in snapshot.frames.values():
            try:
                self.store.insert_frame(frame.animation_id, frame.frame_id, frame.data)
            except PersistenceFailure as e:
                failed_frame_ids.append(frame.frame_id)
                logger.error(
                    f"Error inserting frame {frame.frame_id} for animation "
                    f"{frame.animation_id}: {e.message}"
                )

        if metadata_persisted and not failed_frame_ids:
            logger.info("Stored new animation state with no errors")
            status = ReplaceStatus.PERSISTED
            error = None
        else:
            logger.warning(
                f"Cache and database diverged: metadata_persisted="
                f"{metadata_persisted}, {len(failed_frame_ids)} frames failed"
            )
            status = ReplaceStatus.APPLIED_NOT_PERSISTED
            error = (
                "Animations were applied in memory but could not be fully "
                "written to the database"
            )

        return ReplaceResult(
            status=status,
            animation_count=len(snapshot.metadata),
            frame_count=len(snapshot.frames),
            metadata_persisted=metadata_persisted,
            failed_frame_ids=failed_frame_ids,
            error=error,
        )

    def get_metadata(self) -> List[Metadata]:
        """
        Return the current metadata.

        Raises:
            CacheInconsistency: if a referenced frame ID has the wrong length.
        """
        snapshot = self._snapshot
        for entry in snapshot.metadata:
            for frame_id in entry.frame_order:
                if len(frame_id) != FRAME_ID_LENGTH:
                    raise CacheInconsistency(
                        f"Frame ID {frame_id} is not the correct length",
                        details={
                            "frame_id": frame_id,
                            "animation_id": entry.animation_id,
                        },
                    )
        return list(snapshot.metadata)

    def get_frame(self, frame_id: str) -> Frame:
        """
        Look up a frame in the cache.

        Raises:
            NotFound: if no cached frame has this ID.
        """
        frame = self._snapshot.frames.get(frame_id)
        if frame is None:
            raise NotFound(
                f"Frame {frame_id} not found", details={"frame_id": frame_id}
            )
        return frame
