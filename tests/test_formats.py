import pytest

from camframe.formats import Frame, PixFormat


@pytest.mark.parametrize(
    "fmt, expected",
    [
        (PixFormat.GRAYSCALE, 6),
        (PixFormat.RGB565, 12),
        (PixFormat.YUV422, 12),
        (PixFormat.RGB888, 18),
    ],
)
def test_expected_size_of_raw_formats(fmt, expected):
    frame = Frame(bytes(expected), 3, 2, fmt)
    assert frame.expected_size == expected


def test_jpeg_is_compressed():
    jpeg = Frame(b"\xff\xd8\xff\xd9", 8, 8, PixFormat.JPEG)
    raw = Frame(bytes(3), 1, 1, PixFormat.RGB888)
    assert jpeg.format.is_compressed is True
    assert jpeg.format.bytes_per_pixel is None
    assert raw.format.is_compressed is False


def test_frame_length_matches_buffer():
    frame = Frame(b"\x01\x02\x03\x04", 2, 2, PixFormat.GRAYSCALE)
    assert len(frame) == 4
    assert frame.pixel_count == 4
    assert frame.expected_size == len(frame)


def test_frame_copies_buffer_to_bytes():
    data = bytearray(b"\x10\x20")
    frame = Frame(data, 1, 1, PixFormat.RGB565)
    data[0] = 0
    assert frame.buf == b"\x10\x20"


def test_expected_size_for_jpeg_is_none():
    frame = Frame(b"\xff\xd8\xff\xd9", 8, 8, PixFormat.JPEG)
    assert frame.expected_size is None


def test_expected_size_for_rgb888():
    frame = Frame(bytes(4 * 3 * 3), 4, 3, PixFormat.RGB888)
    assert frame.expected_size == len(frame.buf)


def test_format_accepts_value():
    frame = Frame(b"", 0, 0, "yuv422")
    assert frame.format is PixFormat.YUV422


def test_negative_dimensions_rejected():
    with pytest.raises(ValueError):
        Frame(b"", -1, 2, PixFormat.GRAYSCALE)


def test_unknown_format_rejected():
    with pytest.raises(ValueError):
        Frame(b"", 1, 1, "bayer")