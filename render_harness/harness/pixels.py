"""Color-buffer readback and scanline flip.

The renderer's framebuffer origin is bottom-left; captured images and
golden fixtures are top-left.  ``flip_rows`` reverses the row order in
place without touching the bytes inside a row, so the result is exact
and safe for pixel-perfect comparison.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

import numpy as np

if TYPE_CHECKING:
    from render_harness.harness.renderer import Renderer

logger = logging.getLogger(__name__)

BYTES_PER_PIXEL = 4

Buffer = Union[bytearray, memoryview, np.ndarray]


def _as_rows(buf: Buffer, width: int, height: int) -> np.ndarray:
    """View *buf* as ``height`` writable rows without copying.

    Contiguous buffers come back as ``(height, stride)``.  A strided numpy
    array is used as-is when its first axis is the row axis; anything
    else would need a copy, so it is rejected.
    """
    if width < 0 or height < 0:
        raise ValueError(f"invalid dimensions {width}x{height}")
    stride = width * BYTES_PER_PIXEL
    if isinstance(buf, np.ndarray):
        if buf.dtype != np.uint8:
            raise ValueError(f"expected uint8 pixels, got {buf.dtype}")
        flat = buf
    else:
        flat = np.frombuffer(buf, dtype=np.uint8)
    if flat.size != stride * height:
        raise ValueError(
            f"buffer holds {flat.size} bytes, expected {stride * height} "
            f"for {width}x{height} RGBA"
        )
    if not flat.flags.writeable:
        raise ValueError("pixel buffer is read-only")
    if flat.flags.c_contiguous:
        return flat.reshape(height, stride)
    if flat.ndim >= 2 and flat.shape[0] == height:
        return flat
    raise ValueError(
        f"non-contiguous pixel array of shape {flat.shape} has no row axis "
        f"of length {height}"
    )


def flip_rows(buf: Buffer, width: int, height: int) -> Buffer:
    """Reverse the scanline order of an RGBA buffer in place.

    Parameters
    ----------
    buf : bytearray | memoryview | np.ndarray
        Writable, row-major RGBA bytes, ``width * height * 4`` long.
    width, height : int
        Image size in pixels.

    Returns
    -------
    The same *buf*, for chaining.

    Notes
    -----
    Swaps row ``i`` with row ``j`` through a one-row scratch buffer,
    starting at ``i = 0, j = height - 1`` and stopping when they meet.
    Flipping twice restores the input; ``height <= 1`` is a no-op.
    """
    rows = _as_rows(buf, width, height)
    if height < 2:
        return buf
    tmp = np.empty_like(rows[0])
    i, j = 0, height - 1
    while i < j:
        tmp[:] = rows[i]
        rows[i] = rows[j]
        rows[j] = tmp
        i += 1
        j -= 1
    return buf


class PixelBuffer(bytearray):
    """RGBA bytes that remember their dimensions.

    Behaves as a plain ``bytearray`` (``len(buf) == width * height * 4``)
    so callers expecting raw bytes need nothing special.
    """

    def __init__(self, data: Buffer, width: int, height: int) -> None:
        super().__init__(data)
        if len(self) != width * height * BYTES_PER_PIXEL:
            raise ValueError(
                f"buffer holds {len(self)} bytes, expected "
                f"{width * height * BYTES_PER_PIXEL} for {width}x{height} RGBA"
            )
        self.width = width
        self.height = height

    def to_array(self) -> np.ndarray:
        """``(height, width, 4)`` uint8 view sharing this buffer."""
        return to_image_array(self, self.width, self.height)


def read_back(renderer: "Renderer") -> PixelBuffer:
    """Read the renderer's viewport as top-left-origin RGBA.

    Returns
    -------
    PixelBuffer
        ``viewport width * height * 4`` bytes, rows top to bottom.
    """
    x, y, w, h = renderer.viewport()
    pixels = PixelBuffer(renderer.read_pixels(x, y, w, h), w, h)
    flip_rows(pixels, w, h)
    logger.debug("Read back %dx%d viewport (%d bytes)", w, h, len(pixels))
    return pixels


def to_image_array(pixels: Buffer, width: int, height: int) -> np.ndarray:
    """Return an ``(height, width, 4)`` uint8 view for image writers."""
    if isinstance(pixels, np.ndarray):
        return pixels.reshape(height, width, BYTES_PER_PIXEL)
    flat = np.frombuffer(pixels, dtype=np.uint8)
    return flat.reshape(height, width, BYTES_PER_PIXEL)
