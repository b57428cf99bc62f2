"""Pixel formats and camera frame buffers."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class PixFormat(enum.Enum):
    """Pixel layouts a camera frame buffer can hold."""

    RGB565 = "rgb565"
    YUV422 = "yuv422"
    GRAYSCALE = "grayscale"
    JPEG = "jpeg"
    RGB888 = "rgb888"

    @property
    def bytes_per_pixel(self) -> int | None:
        """Bytes one pixel occupies, or None for compressed formats."""
        return _BYTES_PER_PIXEL[self]

    @property
    def is_compressed(self) -> bool:
        return self.bytes_per_pixel is None


_BYTES_PER_PIXEL = {
    PixFormat.RGB565: 2,
    PixFormat.YUV422: 2,
    PixFormat.GRAYSCALE: 1,
    PixFormat.JPEG: None,
    PixFormat.RGB888: 3,
}


@dataclass(frozen=True)
class Frame:
    """A captured image: raw bytes plus dimensions and pixel format."""

    buf: bytes
    width: int
    height: int
    format: PixFormat

    def __post_init__(self) -> None:
        object.__setattr__(self, "buf", bytes(self.buf))
        if self.width < 0 or self.height < 0:
            raise ValueError("frame dimensions must not be negative")
        if not isinstance(self.format, PixFormat):
            object.__setattr__(self, "format", PixFormat(self.format))

    def __len__(self) -> int:
        return len(self.buf)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def expected_size(self) -> int | None:
        """Byte size an uncompressed frame of these dimensions should have."""
        bpp = self.format.bytes_per_pixel
        if bpp is None:
            return None
        return self.pixel_count * bpp