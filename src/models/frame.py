"""
Frame model for submitted video frames.

Pixel layouts:
    gray8: one byte per pixel, row-major, height*width bytes.
    bgr24: three interleaved bytes per pixel (B, G, R), row-major,
           height*width*3 bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from .errors import DimensionMismatch


PIXEL_FORMAT_GRAY8 = "gray8"
PIXEL_FORMAT_BGR24 = "bgr24"

CHANNELS_BY_FORMAT = {
    PIXEL_FORMAT_GRAY8: 1,
    PIXEL_FORMAT_BGR24: 3,
}


@dataclass(frozen=True, eq=False)
class Frame:
    """
    An immutable frame owned by a stream's FrameBuffer.

    The pixel array is marked read-only so detectors can only borrow it.

    Attributes:
        stream_id: Identifier of the camera stream.
        width: Frame width in pixels.
        height: Frame height in pixels.
        pixels: uint8 array of shape (height, width) or (height, width, 3).
        timestamp: Monotonic capture timestamp in seconds.
        frame_index: Sequential frame number assigned by the submitter.
    """
    stream_id: str
    width: int
    height: int
    pixels: np.ndarray
    timestamp: float
    frame_index: int = 0

    @classmethod
    def from_numpy(
        cls,
        stream_id: str,
        image: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
    ) -> "Frame":
        """Create a Frame from a numpy image. The pixels are copied and frozen."""
        view = np.array(image, dtype=np.uint8, copy=True)
        view.flags.writeable = False
        h, w = image.shape[:2]
        return cls(
            stream_id=stream_id,
            width=w,
            height=h,
            pixels=view,
            timestamp=timestamp,
            frame_index=frame_index,
        )

    @classmethod
    def from_buffer(
        cls,
        stream_id: str,
        pixel_buffer: Union[bytes, bytearray, memoryview],
        width: int,
        height: int,
        timestamp: float,
        pixel_format: str = PIXEL_FORMAT_BGR24,
        frame_index: int = 0,
    ) -> "Frame":
        """
        Create a Frame from a packed pixel buffer.

        Args:
            stream_id: Stream the frame belongs to.
            pixel_buffer: Packed bytes in the given pixel format.
            width: Declared width in pixels.
            height: Declared height in pixels.
            timestamp: Monotonic capture timestamp.
            pixel_format: "gray8" or "bgr24".
            frame_index: Sequential frame number.

        Raises:
            DimensionMismatch: If the dimensions are non-positive or the buffer
                length does not match width * height * channels.
        """
        channels = CHANNELS_BY_FORMAT.get(pixel_format)
        if channels is None:
            raise DimensionMismatch(f"Unknown pixel format: {pixel_format}")
        if width <= 0 or height <= 0:
            raise DimensionMismatch(f"Non-positive frame size {width}x{height}")

        # bytes() snapshots mutable buffers; an immutable bytes object is reused as is
        raw = bytes(pixel_buffer)
        expected = width * height * channels
        if len(raw) != expected:
            raise DimensionMismatch(
                f"Buffer holds {len(raw)} bytes, expected {expected} "
                f"for {width}x{height} {pixel_format}"
            )

        data = np.frombuffer(raw, dtype=np.uint8)
        shape = (height, width) if channels == 1 else (height, width, channels)
        return cls(
            stream_id=stream_id,
            width=width,
            height=height,
            pixels=data.reshape(shape),
            timestamp=timestamp,
            frame_index=frame_index,
        )

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else self.pixels.shape[2]

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def is_consistent(self) -> bool:
        """Whether the pixel array agrees with the declared width and height."""
        return (
            self.width > 0
            and self.height > 0
            and self.pixels.shape[:2] == (self.height, self.width)
        )
