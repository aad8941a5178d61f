"""
Pixel grid animation service
Domain entities and API models
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, confloat, conint, model_validator

from pixelgrid.config import (
    FRAME_BYTE_LENGTH,
    FRAME_ID_LENGTH,
    MAX_FRAME_DURATION,
    MAX_REPEAT_COUNT,
    REPEAT_FOREVER,
)
from pixelgrid.errors import InvalidLength

# Integer durations stay integers so they read back exactly as uploaded
FrameDuration = Union[
    conint(gt=0, le=MAX_FRAME_DURATION),
    confloat(gt=0, le=MAX_FRAME_DURATION, allow_inf_nan=False),
]
RepeatCount = conint(ge=0, le=MAX_REPEAT_COUNT)


@dataclass(frozen=True)
class Frame:
    """One still image of an animation, as a flat RGB buffer."""

    frame_id: str
    animation_id: str
    data: bytes

    def __post_init__(self) -> None:
        data = bytes(self.data)
        if len(data) != FRAME_BYTE_LENGTH:
            raise InvalidLength(
                f"Frame {self.frame_id} must be {FRAME_BYTE_LENGTH} bytes, "
                f"got {len(data)}",
                details={"frame_id": self.frame_id, "actual": len(data)},
            )
        object.__setattr__(self, "data", data)


class Metadata(BaseModel):
    """Descriptor of one animation: timing, looping and frame order."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    animation_id: str = Field(alias="animationID")
    frame_duration: FrameDuration = Field(
        alias="frameDuration", description="Display time per frame"
    )
    repeat_count: RepeatCount = Field(
        alias="repeatCount",
        description=f"Number of loops ({REPEAT_FOREVER} = forever)",
    )
    total_frames: int = Field(alias="totalFrames", ge=0)
    frame_order: List[str] = Field(alias="frameOrder")

    @model_validator(mode="after")
    def check_frame_order(self) -> "Metadata":
        if self.total_frames != len(self.frame_order):
            raise ValueError(
                f"totalFrames ({self.total_frames}) does not match "
                f"frameOrder length ({len(self.frame_order)})"
            )
        if len(set(self.frame_order)) != len(self.frame_order):
            raise ValueError("frameOrder contains duplicate frame IDs")
        for frame_id in self.frame_order:
            if len(frame_id) != FRAME_ID_LENGTH:
                raise ValueError(
                    f"Frame ID {frame_id!r} is not {FRAME_ID_LENGTH} characters"
                )
        return self

    @property
    def repeats_forever(self) -> bool:
        return self.repeat_count == REPEAT_FOREVER

    def to_wire(self) -> dict:
        """Serialize with the camelCase keys the browser client uses."""
        return self.model_dump(by_alias=True)


class MetadataResponse(BaseModel):
    metadata: List[Metadata]


class IncomingAnimation(BaseModel):
    """A validated client animation with frames expanded to raw bytes."""

    animation_id: str
    frame_duration: FrameDuration
    repeat_count: RepeatCount
    frames: List[bytes]


class ReplaceStatus(str, Enum):
    PERSISTED = "persisted"  # Cache swapped and written to the store
    APPLIED_NOT_PERSISTED = "applied_not_persisted"  # Cache swapped, store diverged


class ReplaceResult(BaseModel):
    """Outcome of a full replace."""

    status: ReplaceStatus
    animation_count: int
    frame_count: int
    metadata_persisted: bool = True
    failed_frame_ids: List[str] = Field(default_factory=list)
    error: Optional[str] = Field(
        default=None, description="Summary of the persistence failure, if any"
    )
