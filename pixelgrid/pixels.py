"""
Conversions between the three representations of a frame's pixels:

- a flat buffer of FRAME_BYTE_LENGTH channel values in row-major order,
- a square grid of (r, g, b) tuples indexed as grid[row][col],
- the hardware scan order of the physical matrix, which is wired as a
  serpentine: every odd column runs bottom-to-top.

All functions are pure and raise on contract violations.
"""

from typing import List, Sequence, Tuple

from pixelgrid.config import (
    CHANNELS_PER_PIXEL,
    FRAME_BYTE_LENGTH,
    IMAGE_PIXEL_LENGTH,
)
from pixelgrid.errors import InvalidArgument, InvalidLength

Pixel = Tuple[int, int, int]
Grid = List[List[Pixel]]


def to_grid(flat: Sequence[int]) -> Grid:
    """
    Convert a flat row-major buffer into a 16x16 grid of RGB tuples.

    Raises:
        InvalidLength: if the buffer is not exactly FRAME_BYTE_LENGTH long.
    """
    if len(flat) != FRAME_BYTE_LENGTH:
        raise InvalidLength(
            f"Pixel buffer must be {FRAME_BYTE_LENGTH} bytes, got {len(flat)}",
            details={"expected": FRAME_BYTE_LENGTH, "actual": len(flat)},
        )

    grid: Grid = []
    for row in range(IMAGE_PIXEL_LENGTH):
        cells = []
        for col in range(IMAGE_PIXEL_LENGTH):
            index = CHANNELS_PER_PIXEL * (row * IMAGE_PIXEL_LENGTH + col)
            cells.append((flat[index], flat[index + 1], flat[index + 2]))
        grid.append(cells)
    return grid


def from_grid(grid: Sequence[Sequence[Sequence[int]]]) -> bytes:
    """Flatten a 16x16 grid back into a row-major byte buffer."""
    if len(grid) != IMAGE_PIXEL_LENGTH or any(
        len(row) != IMAGE_PIXEL_LENGTH for row in grid
    ):
        raise InvalidLength(
            f"Grid must be {IMAGE_PIXEL_LENGTH}x{IMAGE_PIXEL_LENGTH}",
            details={"rows": len(grid)},
        )

    flat = bytearray()
    for row_index, row in enumerate(grid):
        for col_index, pixel in enumerate(row):
            if len(pixel) != CHANNELS_PER_PIXEL:
                raise InvalidLength(
                    f"Pixel at ({row_index}, {col_index}) must have "
                    f"{CHANNELS_PER_PIXEL} channels, got {len(pixel)}"
                )
            for channel in pixel:
                flat.append(_checked_channel(channel))
    return bytes(flat)


def reverse_alternate_columns(grid: Sequence[Sequence[Pixel]]) -> Grid:
    """
    Reverse the row order of every odd column.

    Models the serpentine wiring of the physical matrix. Returns a new grid;
    applying it twice gives back the original.
    """
    result = [list(row) for row in grid]
    if not result:
        return result

    height = len(result)
    for col in range(len(result[0])):
        if col % 2 == 1:
            for row in range(height // 2):
                mirror = height - row - 1
                result[row][col], result[mirror][col] = (
                    result[mirror][col],
                    result[row][col],
                )
    return result


def to_hardware_order(flat: Sequence[int]) -> bytes:
    """Reorder a row-major frame buffer into the matrix's scan order."""
    return from_grid(reverse_alternate_columns(to_grid(flat)))


def parse_pixels(flat: Sequence[int]) -> List[Pixel]:
    """Split a buffer into (r, g, b) tuples."""
    _require_whole_pixels(flat)
    return [
        (flat[i], flat[i + 1], flat[i + 2])
        for i in range(0, len(flat), CHANNELS_PER_PIXEL)
    ]


def to_hex(flat: Sequence[int]) -> List[str]:
    """
    Convert a buffer of RGB triplets into lowercase "#rrggbb" strings.

    >>> to_hex([255, 0, 128, 0, 255, 0])
    ['#ff0080', '#00ff00']
    """
    return [
        "#" + "".join(f"{_checked_channel(channel):02x}" for channel in pixel)
        for pixel in parse_pixels(flat)
    ]


def _require_whole_pixels(flat: Sequence[int]) -> None:
    if len(flat) % CHANNELS_PER_PIXEL != 0:
        raise InvalidLength(
            f"Buffer length must be a multiple of {CHANNELS_PER_PIXEL}, "
            f"got {len(flat)}",
            details={"actual": len(flat)},
        )


def _checked_channel(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
        raise InvalidArgument(
            f"Channel value must be an integer between 0 and 255, got {value!r}"
        )
    return value
