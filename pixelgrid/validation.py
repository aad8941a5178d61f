"""
Structural checks for client animation payloads.

The whole payload is validated before the cache is touched; the first
problem found aborts the batch with ValidationFailed.
"""

import math
from typing import Any, List, Sequence, Set

from pydantic import ValidationError

from pixelgrid.config import (
    CHANNELS_PER_PIXEL,
    FRAME_BYTE_LENGTH,
    FRAME_PIXEL_COUNT,
    MAX_FRAME_DURATION,
    MAX_REPEAT_COUNT,
)
from pixelgrid.errors import ValidationFailed
from pixelgrid.models import IncomingAnimation

REQUIRED_FIELDS = ("animationID", "frameDuration", "repeatCount", "frames")


def validate_animations(payload: Any) -> List[IncomingAnimation]:
    """
    Validate a decoded client payload and expand every frame to bytes.

    Args:
        payload: The JSON-decoded list of animation objects.

    Returns:
        One IncomingAnimation per entry, in payload order.

    Raises:
        ValidationFailed: on the first malformed entry.
    """
    if not isinstance(payload, list):
        raise ValidationFailed("Payload must be a list of animations")
    if not payload:
        raise ValidationFailed("Payload contains no animations")

    seen_ids: Set[str] = set()
    animations = []
    for index, entry in enumerate(payload):
        animation = _validate_animation(index, entry)
        if animation.animation_id in seen_ids:
            raise ValidationFailed(
                f"Duplicate animationID {animation.animation_id!r}",
                details={"animation_index": index},
            )
        seen_ids.add(animation.animation_id)
        animations.append(animation)

    return animations


def _validate_animation(index: int, entry: Any) -> IncomingAnimation:
    if entry is None:
        raise ValidationFailed(
            f"Animation {index} is null", details={"animation_index": index}
        )
    if not isinstance(entry, dict):
        raise ValidationFailed(
            f"Animation {index} must be an object", details={"animation_index": index}
        )

    # 0 and "" are present values; only a missing key or null is missing
    for field in REQUIRED_FIELDS:
        if entry.get(field) is None:
            raise ValidationFailed(
                f"Animation {index} is missing {field}",
                details={"animation_index": index, "field": field},
            )

    animation_id = entry["animationID"]
    if not isinstance(animation_id, str):
        raise ValidationFailed(
            f"Animation {index}: animationID must be a string",
            details={"animation_index": index, "field": "animationID"},
        )

    frame_duration = entry["frameDuration"]
    if not _is_number(frame_duration) or not 0 < frame_duration <= MAX_FRAME_DURATION:
        raise ValidationFailed(
            f"Animation {index}: frameDuration must be a finite number "
            f"between 0 and {MAX_FRAME_DURATION}",
            details={"animation_index": index, "field": "frameDuration"},
        )

    repeat_count = entry["repeatCount"]
    if not _is_int(repeat_count) or not 0 <= repeat_count <= MAX_REPEAT_COUNT:
        raise ValidationFailed(
            f"Animation {index}: repeatCount must be an integer "
            f"between 0 and {MAX_REPEAT_COUNT}",
            details={"animation_index": index, "field": "repeatCount"},
        )

    frames = entry["frames"]
    if not isinstance(frames, list):
        raise ValidationFailed(
            f"Animation {index}: frames must be a list",
            details={"animation_index": index, "field": "frames"},
        )
    if not frames:
        raise ValidationFailed(
            f"Animation {index}: frame list has no entries",
            details={"animation_index": index, "field": "frames"},
        )

    buffers = [
        frame_to_bytes(frame, index, frame_index)
        for frame_index, frame in enumerate(frames)
    ]
    try:
        return IncomingAnimation(
            animation_id=animation_id,
            frame_duration=frame_duration,
            repeat_count=repeat_count,
            frames=buffers,
        )
    except ValidationError as e:
        raise ValidationFailed(
            f"Animation {index} is invalid: {e}", details={"animation_index": index}
        ) from None


def frame_to_bytes(frame: Any, animation_index: int, frame_index: int) -> bytes:
    """
    Flatten one wire frame into a FRAME_BYTE_LENGTH byte buffer.

    A frame is a dense object ({"0": ..., "1": ...}) or list holding either
    FRAME_PIXEL_COUNT [r, g, b] pixels or FRAME_BYTE_LENGTH flat channels.
    """
    where = {"animation_index": animation_index, "frame_index": frame_index}
    entries = _dense_entries(frame, where)

    if len(entries) == FRAME_PIXEL_COUNT:
        channels: List[Any] = []
        for pixel_index, pixel in enumerate(entries):
            if (
                not isinstance(pixel, (list, tuple))
                or len(pixel) != CHANNELS_PER_PIXEL
            ):
                raise ValidationFailed(
                    f"Animation {animation_index}, frame {frame_index}: pixel "
                    f"{pixel_index} must be an [r, g, b] triplet",
                    details={**where, "pixel_index": pixel_index},
                )
            channels.extend(pixel)
    elif len(entries) == FRAME_BYTE_LENGTH:
        channels = list(entries)
    else:
        raise ValidationFailed(
            f"Animation {animation_index}, frame {frame_index} has "
            f"{len(entries)} entries, expected {FRAME_PIXEL_COUNT}",
            details={**where, "entries": len(entries)},
        )

    for position, value in enumerate(channels):
        if not _is_int(value) or not 0 <= value <= 255:
            raise ValidationFailed(
                f"Animation {animation_index}, frame {frame_index}: value "
                f"{value!r} at channel {position} is not between 0 and 255",
                details={**where, "channel": position},
            )

    return bytes(channels)


def _dense_entries(frame: Any, where: dict) -> Sequence[Any]:
    if isinstance(frame, list):
        return frame
    if not isinstance(frame, dict):
        raise ValidationFailed(
            "Frame must be an object or a list", details=dict(where)
        )

    try:
        by_position = {int(key): value for key, value in frame.items()}
    except (TypeError, ValueError):
        raise ValidationFailed(
            "Frame keys must be integer positions", details=dict(where)
        ) from None

    if len(by_position) != len(frame) or set(by_position) != set(range(len(frame))):
        raise ValidationFailed(
            "Frame keys must run densely from 0", details=dict(where)
        )

    return [by_position[position] for position in range(len(frame))]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)
