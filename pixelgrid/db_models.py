"""
SQLAlchemy ORM models for the animation store.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, Integer, LargeBinary, String

from pixelgrid.database import Base


class AnimationMetadata(Base):
    """
    One animation descriptor.

    The whole table is replaced on every save; `position` keeps the
    display order of the animations.
    """

    __tablename__ = "animation_metadata"

    id = Column(Integer, primary_key=True, index=True)
    position = Column(Integer, nullable=False, index=True)
    animation_id = Column(String(255), unique=True, nullable=False)
    frame_duration = Column(Float, nullable=False)
    repeat_count = Column(Integer, nullable=False)
    total_frames = Column(Integer, nullable=False)
    frame_order = Column(JSON, nullable=False)  # list of frame IDs

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def to_dict(self) -> dict:
        """Convert to the wire (camelCase) representation."""
        duration = self.frame_duration
        if isinstance(duration, float) and duration.is_integer():
            duration = int(duration)  # Float columns read 100 back as 100.0
        return {
            "animationID": self.animation_id,
            "frameDuration": duration,
            "repeatCount": self.repeat_count,
            "totalFrames": self.total_frames,
            "frameOrder": list(self.frame_order or []),
        }


class AnimationFrame(Base):
    """Raw RGB data of one frame."""

    __tablename__ = "animation_frames"

    id = Column(Integer, primary_key=True, index=True)
    frame_id = Column(String(64), unique=True, nullable=False, index=True)
    animation_id = Column(String(255), nullable=False, index=True)

    # Frame data
    data = Column(LargeBinary, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
