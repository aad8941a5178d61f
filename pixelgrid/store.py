"""
Persisted store for animation metadata and frames.

A thin document-style layer over SQLAlchemy: the metadata collection is
read and replaced as a whole, frames are fetched and upserted by ID.
Database and driver errors surface as PersistenceFailure; this layer
never retries.
"""

import logging
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pixelgrid.db_models import AnimationFrame, AnimationMetadata
from pixelgrid.errors import CacheInconsistency, PersistenceFailure
from pixelgrid.models import Metadata

logger = logging.getLogger(__name__)

# Some drivers raise these directly when binding a value the column cannot hold
DATABASE_ERRORS = (SQLAlchemyError, OverflowError, ValueError)


class AnimationStore:
    """Store collaborator used by the SyncEngine."""

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy session,
                usually a sessionmaker.
        """
        self._session_factory = session_factory

    def fetch_metadata_array(self) -> List[Metadata]:
        """Return all metadata in display order."""
        with self._session_factory() as db:
            try:
                rows = (
                    db.query(AnimationMetadata)
                    .order_by(AnimationMetadata.position)
                    .all()
                )
                documents = [row.to_dict() for row in rows]
            except DATABASE_ERRORS as e:
                raise PersistenceFailure(
                    f"Could not read metadata: {e}"
                ) from e

        try:
            return [Metadata.model_validate(document) for document in documents]
        except ValidationError as e:
            raise CacheInconsistency(
                f"Stored metadata is invalid: {e}"
            ) from e

    def replace_metadata_array(self, metadata: Sequence[Metadata]) -> None:
        """Replace the whole metadata collection in one transaction."""
        with self._session_factory() as db:
            try:
                db.query(AnimationMetadata).delete()
                for position, entry in enumerate(metadata):
                    db.add(
                        AnimationMetadata(
                            position=position,
                            animation_id=entry.animation_id,
                            frame_duration=entry.frame_duration,
                            repeat_count=entry.repeat_count,
                            total_frames=entry.total_frames,
                            frame_order=list(entry.frame_order),
                        )
                    )
                db.commit()
            except DATABASE_ERRORS as e:
                db.rollback()
                raise PersistenceFailure(
                    f"Could not replace metadata: {e}"
                ) from e

        logger.debug(f"Stored {len(metadata)} metadata entries")

    def fetch_frame(self, frame_id: str) -> Optional[bytes]:
        """Return the stored frame data, or None if the frame is unknown."""
        with self._session_factory() as db:
            try:
                frame = (
                    db.query(AnimationFrame)
                    .filter(AnimationFrame.frame_id == frame_id)
                    .first()
                )
            except DATABASE_ERRORS as e:
                raise PersistenceFailure(
                    f"Could not read frame {frame_id}: {e}",
                    details={"frame_id": frame_id},
                ) from e

            return bytes(frame.data) if frame else None

    def insert_frame(self, animation_id: str, frame_id: str, data: bytes) -> None:
        """Insert a frame, or overwrite the one stored under the same ID."""
        with self._session_factory() as db:
            try:
                frame = (
                    db.query(AnimationFrame)
                    .filter(AnimationFrame.frame_id == frame_id)
                    .first()
                )
                if frame:
                    frame.animation_id = animation_id
                    frame.data = bytes(data)
                else:
                    db.add(
                        AnimationFrame(
                            frame_id=frame_id,
                            animation_id=animation_id,
                            data=bytes(data),
                        )
                    )
                db.commit()
            except DATABASE_ERRORS as e:
                db.rollback()
                raise PersistenceFailure(
                    f"Could not store frame {frame_id}: {e}",
                    details={"frame_id": frame_id, "animation_id": animation_id},
                ) from e
