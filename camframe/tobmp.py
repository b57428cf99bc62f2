"""Wrap raw camera frames in BMP files and expand them to 24-bit pixels."""

from __future__ import annotations

import struct

from camframe.formats import Frame, PixFormat
from camframe.yuv import yuv2rgb

BMP_HEADER_LEN = 54
_DIB_HEADER_LEN = 40
_PIXELS_PER_METER = 0x0B13  # 72 DPI
_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def _rgb565_to_bgr(src: bytes, pix_count: int) -> bytes:
    out = bytearray()
    for hb, lb in zip(src[0:pix_count * 2:2], src[1:pix_count * 2:2]):
        out += bytes(((lb & 0x1F) << 3, ((hb & 0x07) << 5) | ((lb & 0xE0) >> 3), hb & 0xF8))
    return bytes(out)


def _yuv422_to_bgr(src: bytes, pix_count: int) -> bytes:
    out = bytearray(pix_count * 3)
    it = iter(src[:(pix_count // 2) * 4])
    pos = 0
    for y0, u, y1, v in zip(it, it, it, it):
        r, g, b = yuv2rgb(y0, u, v)
        out[pos:pos + 3] = bytes((b, g, r))
        r, g, b = yuv2rgb(y1, u, v)
        out[pos + 3:pos + 6] = bytes((b, g, r))
        pos += 6
    return bytes(out)


def _reject_compressed(fmt: PixFormat) -> None:
    if fmt.is_compressed:
        raise ValueError(f"{fmt.value} buffers must be decoded before conversion")


def fmt2rgb888(src: bytes, fmt: PixFormat) -> bytes:
    """Expand a raw buffer to 24-bit pixels (BGR order, as BMP stores them)."""
    fmt = PixFormat(fmt)
    _reject_compressed(fmt)
    src = bytes(src)
    if fmt is PixFormat.RGB888:
        return src
    if fmt is PixFormat.RGB565:
        return _rgb565_to_bgr(src, len(src) // 2)
    if fmt is PixFormat.GRAYSCALE:
        return bytes(b for value in src for b in (value, value, value))
    return _yuv422_to_bgr(src, len(src) // 2)


def fmt2bmp(src: bytes, width: int, height: int, fmt: PixFormat) -> bytes:
    """Build a top-down BMP file from a raw image buffer."""
    fmt = PixFormat(fmt)
    _reject_compressed(fmt)
    src = bytes(src)
    pix_count = width * height
    needed = pix_count * fmt.bytes_per_pixel
    if len(src) < needed:
        raise ValueError(f"source buffer holds {len(src)} bytes, {needed} needed")

    grayscale = fmt is PixFormat.GRAYSCALE
    bpp = 1 if grayscale else 3
    palette_size = 4 * 256 if grayscale else 0
    out_size = pix_count * bpp + BMP_HEADER_LEN + palette_size

    header = _HEADER.pack(
        b"BM",
        out_size,
        0,
        BMP_HEADER_LEN + palette_size,
        _DIB_HEADER_LEN,
        width,
        -height,
        1,
        bpp * 8,
        0,
        pix_count * bpp,
        _PIXELS_PER_METER,
        _PIXELS_PER_METER,
        0,
        0,
    )
    palette = b"".join(bytes((i, i, i, 0)) for i in range(256)) if grayscale else b""

    if fmt is PixFormat.RGB888:
        pixels = src[:pix_count * 3]
    elif fmt is PixFormat.RGB565:
        pixels = _rgb565_to_bgr(src, pix_count)
    elif grayscale:
        pixels = src[:pix_count]
    else:
        pixels = _yuv422_to_bgr(src, pix_count)
    return header + palette + pixels


def frame2bmp(frame: Frame) -> bytes:
    """Build a BMP file from a camera frame."""
    return fmt2bmp(frame.buf, frame.width, frame.height, frame.format)