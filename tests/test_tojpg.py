import io
from itertools import accumulate

import pytest

from camframe.formats import Frame, PixFormat
from camframe.tojpg import (
    convert_image,
    convert_line_format,
    fmt2jpg,
    fmt2jpg_cb,
    frame2jpg,
    frame2jpg_cb,
)
from camframe.yuv import yuv2rgb


def _rgb_image(width, height):
    return bytes((x * 7 + y * 3 + c * 50) % 256 for y in range(height) for x in range(width) for c in range(3))


def _sof(data):
    idx = data.index(b"\xff\xc0")
    height = (data[idx + 5] << 8) | data[idx + 6]
    width = (data[idx + 7] << 8) | data[idx + 8]
    return height, width, data[idx + 9]


def test_line_rgb888_swaps_channel_order():
    src = bytes([1, 2, 3, 4, 5, 6])
    assert convert_line_format(src, PixFormat.RGB888, 2, 0) == bytes([3, 2, 1, 6, 5, 4])


def test_line_grayscale_selects_row():
    src = bytes(range(12))
    assert convert_line_format(src, PixFormat.GRAYSCALE, 4, 2) == bytes([8, 9, 10, 11])


def test_line_rgb565_red():
    assert convert_line_format(b"\xf8\x00", PixFormat.RGB565, 1, 0) == bytes([0xF8, 0, 0])


def test_line_yuv422_matches_table():
    src = bytes([100, 90, 200, 160])
    out = convert_line_format(src, PixFormat.YUV422, 2, 0)
    assert out == bytes(yuv2rgb(100, 90, 160) + yuv2rgb(200, 90, 160))


def test_line_short_source_raises():
    with pytest.raises(ValueError):
        convert_line_format(b"\x00\x00", PixFormat.RGB888, 2, 0)


def test_line_jpeg_raises():
    with pytest.raises(ValueError):
        convert_line_format(b"\xff\xd8", PixFormat.JPEG, 1, 0)


def test_fmt2jpg_markers_and_dimensions():
    data = fmt2jpg(_rgb_image(20, 12), 20, 12, PixFormat.RGB888, 80)
    assert data[:2] == b"\xff\xd8"
    assert data[-2:] == b"\xff\xd9"
    assert _sof(data) == (12, 20, 3)


def test_grayscale_has_one_component():
    src = bytes(range(64))
    data = fmt2jpg(src, 8, 8, PixFormat.GRAYSCALE, 50)
    assert _sof(data) == (8, 8, 1)


def test_quality_is_clamped():
    src = _rgb_image(16, 16)
    assert fmt2jpg(src, 16, 16, PixFormat.RGB888, 0) == fmt2jpg(src, 16, 16, PixFormat.RGB888, 1)
    assert fmt2jpg(src, 16, 16, PixFormat.RGB888, 200) == fmt2jpg(src, 16, 16, PixFormat.RGB888, 100)


def test_callback_matches_memory_output_and_offsets():
    src = _rgb_image(24, 24)
    chunks = []

    def cb(index, chunk):
        chunks.append((index, chunk))
        return len(chunk)

    fmt2jpg_cb(src, 24, 24, PixFormat.RGB888, 60, cb)
    assert len(chunks) > 1
    indices = [index for index, _ in chunks]
    lengths = [len(chunk) for _, chunk in chunks]
    assert indices == [0] + list(accumulate(lengths))[:-1]
    assert chunks[-1][1] == b""
    assert b"".join(c for _, c in chunks) == fmt2jpg(src, 24, 24, PixFormat.RGB888, 60)


def test_frame_helpers_match_buffer_helpers():
    src = _rgb_image(10, 6)
    frame = Frame(src, 10, 6, PixFormat.RGB888)
    collected = bytearray()
    frame2jpg_cb(frame, 70, lambda i, c: collected.extend(c))
    expected = fmt2jpg(src, 10, 6, PixFormat.RGB888, 70)
    assert frame2jpg(frame, 70) == expected
    assert bytes(collected) == expected


def test_convert_image_into_file_like():
    src = bytes(range(0, 256, 4)) * 2
    buf = io.BytesIO()
    convert_image(src, 8, 8, PixFormat.RGB565, 90, buf)
    assert buf.getvalue() == fmt2jpg(src, 8, 8, PixFormat.RGB565, 90)


def test_invalid_dimensions_raise():
    with pytest.raises(ValueError):
        fmt2jpg(b"", 0, 4, PixFormat.RGB888, 50)