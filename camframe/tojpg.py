"""Encode raw camera frames as JPEG."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from camframe.encoder import JpegEncoder, Params, Subsampling
from camframe.formats import Frame, PixFormat
from camframe.yuv import yuv2rgb

# Size of the in-memory buffer that fmt2jpg writes into; output beyond it is dropped.
JPG_BUF_LEN = 128 * 1024

JpegChunkCallback = Callable[[int, bytes], "int | None"]


def convert_line_format(src: bytes, fmt: PixFormat, width: int, line: int) -> bytes:
    """Return row ``line`` of ``src`` as RGB bytes, or grey bytes for grayscale."""
    fmt = PixFormat(fmt)
    if fmt.is_compressed:
        raise ValueError(f"cannot read scanlines from a {fmt.value} buffer")
    if fmt is PixFormat.YUV422 and width % 2:
        raise ValueError("YUV422 rows need an even width")
    size = width * fmt.bytes_per_pixel
    start = size * line
    row = bytes(src[start:start + size])
    if len(row) < size:
        raise ValueError(f"source buffer too short for line {line}")

    if fmt is PixFormat.GRAYSCALE:
        return row

    out = bytearray(width * 3)
    if fmt is PixFormat.RGB888:
        out[0::3] = row[2::3]
        out[1::3] = row[1::3]
        out[2::3] = row[0::3]
    elif fmt is PixFormat.RGB565:
        pairs = zip(row[0::2], row[1::2])
        for index, (hb, lb) in enumerate(pairs):
            out[index * 3:index * 3 + 3] = bytes(
                (hb & 0xF8, ((hb & 0x07) << 5) | ((lb & 0xE0) >> 3), (lb & 0x1F) << 3)
            )
    else:
        it = iter(row)
        pos = 0
        for y0, u, y1, v in zip(it, it, it, it):
            out[pos:pos + 3] = bytes(yuv2rgb(y0, u, v))
            out[pos + 3:pos + 6] = bytes(yuv2rgb(y1, u, v))
            pos += 6
    return bytes(out)


def convert_image(
    src: bytes, width: int, height: int, fmt: PixFormat, quality: int, stream: Any
) -> None:
    """Encode a raw image into ``stream`` (``put_buf`` or ``write`` object).

    Quality is clamped into 1..100. Raises ValueError or OSError on failure.
    """
    fmt = PixFormat(fmt)
    if fmt.is_compressed:
        raise ValueError(f"cannot encode a {fmt.value} buffer")
    if fmt is PixFormat.GRAYSCALE:
        channels, subsampling = 1, Subsampling.Y_ONLY
    else:
        channels, subsampling = 3, Subsampling.H2V2
    quality = min(max(quality, 1), 100)

    encoder = JpegEncoder(stream, width, height, channels, Params(quality, subsampling))
    for line in range(height):
        encoder.process_scanline(convert_line_format(src, fmt, width, line))
    encoder.finish()


class _CallbackStream:
    """Hands each chunk to a callback together with its byte offset."""

    def __init__(self, cb: JpegChunkCallback) -> None:
        self._cb = cb
        self.size = 0

    def put_buf(self, data: bytes | None) -> bool:
        chunk = b"" if data is None else bytes(data)
        written = self._cb(self.size, chunk)
        self.size += len(chunk) if written is None else written
        return True


class _MemoryStream:
    """Collects output up to a fixed limit, silently dropping the overflow."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._buf = bytearray()

    def put_buf(self, data: bytes | None) -> bool:
        if data is None:
            return True
        room = self._limit - len(self._buf)
        if room > 0:
            self._buf += data[:room]
        return True

    def getvalue(self) -> bytes:
        return bytes(self._buf)


def fmt2jpg_cb(
    src: bytes, width: int, height: int, fmt: PixFormat, quality: int, cb: JpegChunkCallback
) -> None:
    """Encode to JPEG, calling ``cb(offset, chunk)`` for each piece of output.

    The callback returns how many bytes it took (None means all of them);
    it is called once more with an empty chunk when the image is complete.
    """
    convert_image(src, width, height, fmt, quality, _CallbackStream(cb))


def frame2jpg_cb(frame: Frame, quality: int, cb: JpegChunkCallback) -> None:
    """Encode a frame to JPEG through a chunk callback."""
    fmt2jpg_cb(frame.buf, frame.width, frame.height, frame.format, quality, cb)


def fmt2jpg(src: bytes, width: int, height: int, fmt: PixFormat, quality: int) -> bytes:
    """Encode a raw image and return the JPEG bytes."""
    stream = _MemoryStream(JPG_BUF_LEN)
    convert_image(src, width, height, fmt, quality, stream)
    return stream.getvalue()


def frame2jpg(frame: Frame, quality: int) -> bytes:
    """Encode a frame and return the JPEG bytes."""
    return fmt2jpg(frame.buf, frame.width, frame.height, frame.format, quality)