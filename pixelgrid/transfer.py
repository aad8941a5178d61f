"""
Wire representation of animations moving between the browser and the server.

Client -> server (full replace): a multipart body with one "metadata" field
holding a JSON array of animations whose frames are dense pixel objects,
plus one application/octet-stream attachment per frame keyed by frame ID.
The server only trusts the metadata document and assigns its own IDs.

Server -> client: {"metadata": [...]} for metadata reads and raw frame
bytes for frame reads.
"""

import json
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from pixelgrid.config import FRAME_BYTE_LENGTH
from pixelgrid.errors import (
    InvalidArgument,
    InvalidLength,
    UnexpectedContentType,
    ValidationFailed,
)
from pixelgrid.models import FrameDuration, Metadata, RepeatCount
from pixelgrid.pixels import parse_pixels
from pixelgrid.validation import frame_to_bytes

OCTET_STREAM = "application/octet-stream"
METADATA_FIELD = "metadata"


class AnimationDraft(BaseModel):
    """Client-side description of one animation before upload."""

    animation_id: str
    frame_duration: FrameDuration
    repeat_count: RepeatCount
    frame_ids: List[str] = Field(description="Client frame IDs in playback order")


class TransferPayload(NamedTuple):
    """Form fields and file attachments for a multipart upload."""

    data: Dict[str, str]
    files: List[Tuple[str, Tuple[str, bytes, str]]]


def frame_to_wire(data: bytes) -> Dict[str, List[int]]:
    """Convert a frame buffer into a dense {"0": [r, g, b], ...} object."""
    if len(data) != FRAME_BYTE_LENGTH:
        raise InvalidLength(
            f"Frame must be {FRAME_BYTE_LENGTH} bytes, got {len(data)}",
            details={"actual": len(data)},
        )
    return {str(index): list(pixel) for index, pixel in enumerate(parse_pixels(data))}


def frame_from_wire(entry: Any) -> bytes:
    """Convert one dense wire frame back into a flat buffer."""
    return frame_to_bytes(entry, 0, 0)


def encode_state(
    animations: Sequence[AnimationDraft],
    frame_data: Mapping[str, bytes],
) -> TransferPayload:
    """
    Build the multipart payload for a full replace.

    Args:
        animations: Animations in display order.
        frame_data: Frame ID -> raw frame bytes for every referenced frame.
    """
    document = []
    files = []
    for animation in animations:
        frames = []
        for frame_id in animation.frame_ids:
            if frame_id not in frame_data:
                raise InvalidArgument(
                    f"No frame data for frame {frame_id} of "
                    f"animation {animation.animation_id}",
                    details={"frame_id": frame_id},
                )
            data = bytes(frame_data[frame_id])
            frames.append(frame_to_wire(data))
            files.append((frame_id, (frame_id, data, OCTET_STREAM)))

        document.append(
            {
                "animationID": animation.animation_id,
                "frameDuration": animation.frame_duration,
                "repeatCount": animation.repeat_count,
                "frames": frames,
            }
        )

    return TransferPayload(
        data={METADATA_FIELD: json.dumps(document, separators=(",", ":"))},
        files=files,
    )


def decode_state(document: Union[str, bytes]) -> Any:
    """Parse the metadata field of an upload into the raw animation list."""
    try:
        return json.loads(document)
    except (TypeError, ValueError) as e:
        raise ValidationFailed(f"Metadata is not valid JSON: {e}") from None


def decode_metadata_response(body: Any) -> List[Metadata]:
    """Read the {"metadata": [...]} document returned by GET /metadata."""
    if not isinstance(body, dict) or not isinstance(body.get(METADATA_FIELD), list):
        raise ValidationFailed("Metadata response must contain a metadata list")

    try:
        return [Metadata.model_validate(entry) for entry in body[METADATA_FIELD]]
    except ValidationError as e:
        raise ValidationFailed(f"Malformed metadata entry: {e}") from None


def decode_frame_response(content_type: Optional[str], body: bytes) -> bytes:
    """
    Accept a frame read only if it is a raw octet stream of the right size.

    Raises:
        UnexpectedContentType: for any other content type.
        InvalidLength: if the body is not FRAME_BYTE_LENGTH bytes.
    """
    media_type = (content_type or "").split(";")[0].strip().lower()
    if media_type != OCTET_STREAM:
        raise UnexpectedContentType(
            f"Unexpected content type {content_type!r}",
            details={"content_type": content_type},
        )
    if len(body) != FRAME_BYTE_LENGTH:
        raise InvalidLength(
            f"Frame body must be {FRAME_BYTE_LENGTH} bytes, got {len(body)}",
            details={"actual": len(body)},
        )
    return bytes(body)
