import pytest

from camframe.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VAL,
    AC_LUM_BITS,
    AC_LUM_VAL,
    DC_LUM_BITS,
    DC_LUM_VAL,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    compute_huffman_table,
    compute_quant_table,
    dct2d,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)


def _is_prefix_free(codes, sizes):
    entries = [(format(c, f"0{s}b")) for c, s in zip(codes, sizes) if s]
    for a in entries:
        for b in entries:
            if a is not b and b.startswith(a) and a != b:
                return False
    return len(set(entries)) == len(entries)


def test_dc_luminance_codes_match_standard():
    codes, sizes = compute_huffman_table(DC_LUM_BITS, DC_LUM_VAL)
    assert (codes[0], sizes[0]) == (0b00, 2)
    assert (codes[1], sizes[1]) == (0b010, 3)


@pytest.mark.parametrize(
    "bits,val",
    [(DC_LUM_BITS, DC_LUM_VAL), (AC_LUM_BITS, AC_LUM_VAL), (AC_CHROMA_BITS, AC_CHROMA_VAL)],
)
def test_huffman_tables_are_prefix_free(bits, val):
    codes, sizes = compute_huffman_table(bits, val)
    assert _is_prefix_free(codes, sizes)
    assert sum(1 for s in sizes if s) == sum(bits[1:])
    assert all(sizes[v] > 0 for v in val[: sum(bits[1:])])


def test_huffman_sizes_follow_bits():
    codes, sizes = compute_huffman_table(AC_LUM_BITS, AC_LUM_VAL)
    for length in range(1, 17):
        assert sum(1 for s in sizes if s == length) == AC_LUM_BITS[length]
    assert sizes[0xF0] > 0


def test_huffman_rejects_bad_bits():
    with pytest.raises(ValueError):
        compute_huffman_table(DC_LUM_BITS[:16], DC_LUM_VAL)
    with pytest.raises(ValueError):
        compute_huffman_table(DC_LUM_BITS, DC_LUM_VAL[:5])


def test_quality_50_keeps_base_table():
    assert compute_quant_table(50, STD_LUM_QUANT) == list(STD_LUM_QUANT)
    assert compute_quant_table(50, STD_CHROMA_QUANT) == list(STD_CHROMA_QUANT)


def test_quality_100_is_all_ones():
    assert compute_quant_table(100, STD_LUM_QUANT) == [1] * 64


def test_quant_table_monotonic_in_quality():
    low = compute_quant_table(10, STD_LUM_QUANT)
    high = compute_quant_table(90, STD_LUM_QUANT)
    assert all(1 <= v <= 255 for v in low + high)
    assert all(lo >= hi for lo, hi in zip(low, high))


@pytest.mark.parametrize("quality", [0, 101, -5])
def test_quant_table_rejects_bad_quality(quality):
    with pytest.raises(ValueError):
        compute_quant_table(quality, STD_LUM_QUANT)


def test_dct_of_zero_block_is_zero():
    assert dct2d([0] * 64) == [0] * 64


def test_dct_of_flat_block_has_only_dc():
    small = dct2d([10] * 64)
    large = dct2d([20] * 64)
    assert small[1:] == [0] * 63
    assert large[1:] == [0] * 63
    assert large[0] == 2 * small[0]
    assert small[0] > 0


def test_dct_is_antisymmetric_in_sign():
    block = [(i * 7) % 50 - 25 for i in range(64)]
    pos = dct2d(block)
    neg = dct2d([-v for v in block])
    assert all(abs(a + b) <= 1 for a, b in zip(pos, neg))


def test_dct_rejects_wrong_size():
    with pytest.raises(ValueError):
        dct2d([0] * 63)


def test_grey_pixels_have_neutral_chroma():
    grey = bytes([0, 0, 0, 77, 77, 77, 255, 255, 255])
    assert rgb_to_ycc(grey) == y_to_ycc(bytes([0, 77, 255]))


def test_rgb_to_y_matches_ycc_luma():
    pixels = bytes([255, 0, 0, 0, 255, 0, 0, 0, 255, 12, 200, 99])
    ycc = rgb_to_ycc(pixels)
    assert rgb_to_y(pixels) == ycc[0::3]


def test_pure_red_chroma_is_clamped():
    ycc = rgb_to_ycc(bytes([255, 0, 0]))
    assert ycc[2] == 255


def test_y_to_ycc_layout():
    assert y_to_ycc(b"\x05\x06") == bytes([5, 128, 128, 6, 128, 128])


def test_rgb_length_must_be_multiple_of_three():
    with pytest.raises(ValueError):
        rgb_to_ycc(b"\x00\x01")
    with pytest.raises(ValueError):
        rgb_to_y(b"\x00\x01\x02\x03")