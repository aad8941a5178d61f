"""
Seed animations written to an empty store on first start.
"""

from typing import Dict, List, Set, Tuple

from pixelgrid.config import IMAGE_PIXEL_LENGTH
from pixelgrid.identifiers import generate_unique
from pixelgrid.models import Metadata
from pixelgrid.pixels import from_grid

GRADIENT_FRAMES = 4
GRADIENT_DURATION_MS = 250
CHECKER_DURATION_MS = 500


def gradient_frame(offset: int) -> bytes:
    """Diagonal red/blue gradient, shifted by `offset` pixels."""
    step = 255 // (2 * (IMAGE_PIXEL_LENGTH - 1))
    grid = [
        [
            (
                ((row + col + offset) % (2 * IMAGE_PIXEL_LENGTH - 1)) * step,
                0,
                255 - ((row + col + offset) % (2 * IMAGE_PIXEL_LENGTH - 1)) * step,
            )
            for col in range(IMAGE_PIXEL_LENGTH)
        ]
        for row in range(IMAGE_PIXEL_LENGTH)
    ]
    return from_grid(grid)


def checker_frame(inverted: bool) -> bytes:
    """Black and white checkerboard."""
    on, off = (255, 255, 255), (0, 0, 0)
    grid = [
        [on if (row + col + inverted) % 2 == 0 else off for col in range(IMAGE_PIXEL_LENGTH)]
        for row in range(IMAGE_PIXEL_LENGTH)
    ]
    return from_grid(grid)


def build_seed() -> Tuple[List[Metadata], Dict[str, List[bytes]]]:
    """
    Build the seed metadata and its frames.

    Returns:
        Tuple of (metadata list, animation ID -> frame buffers in frame order)
    """
    animations = {
        "gradient": (
            GRADIENT_DURATION_MS,
            [gradient_frame(offset) for offset in range(GRADIENT_FRAMES)],
        ),
        "checker": (
            CHECKER_DURATION_MS,
            [checker_frame(False), checker_frame(True)],
        ),
    }

    taken: Set[str] = set()
    metadata = []
    frames = {}
    for animation_id, (duration, buffers) in animations.items():
        frame_order = []
        for _ in buffers:
            frame_id = generate_unique(taken)
            taken.add(frame_id)
            frame_order.append(frame_id)

        metadata.append(
            Metadata(
                animation_id=animation_id,
                frame_duration=duration,
                repeat_count=0,
                total_frames=len(frame_order),
                frame_order=frame_order,
            )
        )
        frames[animation_id] = buffers

    return metadata, frames
