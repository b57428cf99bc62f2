"""Baseline JPEG encoder fed one scanline at a time."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from camframe.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VAL,
    AC_LUM_BITS,
    AC_LUM_VAL,
    DC_CHROMA_BITS,
    DC_CHROMA_VAL,
    DC_LUM_BITS,
    DC_LUM_VAL,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    ZAG,
    compute_huffman_table,
    compute_quant_table,
    dct2d,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

_M_SOF0 = 0xC0
_M_DHT = 0xC4
_M_SOI = 0xD8
_M_EOI = 0xD9
_M_SOS = 0xDA
_M_DQT = 0xDB
_M_APP0 = 0xE0

_OUT_BUF_SIZE = 512

# Tables 0/1 are DC luma/chroma, 2/3 are AC luma/chroma.
_HUFF_SPECS = (
    (DC_LUM_BITS, DC_LUM_VAL),
    (DC_CHROMA_BITS, DC_CHROMA_VAL),
    (AC_LUM_BITS, AC_LUM_VAL),
    (AC_CHROMA_BITS, AC_CHROMA_VAL),
)
_HUFF_TABLES = tuple(compute_huffman_table(bits, val) for bits, val in _HUFF_SPECS)


class Subsampling(enum.IntEnum):
    """Chroma subsampling factors."""

    Y_ONLY = 0
    H1V1 = 1
    H2V1 = 2
    H2V2 = 3


# num_components, luma h sampling, luma v sampling, MCU width, MCU height
_LAYOUTS = {
    Subsampling.Y_ONLY: (1, 1, 1, 8, 8),
    Subsampling.H1V1: (3, 1, 1, 8, 8),
    Subsampling.H2V1: (3, 2, 1, 16, 8),
    Subsampling.H2V2: (3, 2, 2, 16, 16),
}


@dataclass
class Params:
    """Compression parameters: quality 1..100 and chroma subsampling."""

    quality: int = 85
    subsampling: Subsampling = Subsampling.H2V2

    def check(self) -> bool:
        """Return True when the parameters are usable."""
        if not 1 <= self.quality <= 100:
            return False
        try:
            Subsampling(self.subsampling)
        except ValueError:
            return False
        return True


class JpegEncoder:
    """Streams a baseline JPEG to ``stream`` as scanlines are supplied.

    ``stream`` either has ``put_buf(data)`` returning a success flag (called
    with ``None`` once the image is complete), or a file-like ``write``.
    """

    def __init__(
        self,
        stream: Any,
        width: int,
        height: int,
        src_channels: int = 3,
        params: Params | None = None,
    ) -> None:
        params = Params() if params is None else params
        if stream is None:
            raise ValueError("an output stream is required")
        if width < 1 or height < 1:
            raise ValueError("image dimensions must be positive")
        if src_channels not in (1, 3, 4):
            raise ValueError("src_channels must be 1, 3 or 4")
        if not params.check():
            raise ValueError("invalid compression parameters")

        self._stream = stream
        self._params = params
        self._writes_ok = True

        subsampling = Subsampling(params.subsampling)
        (self._num_components, self._h_samp, self._v_samp,
         self._mcu_x, self._mcu_y) = _LAYOUTS[subsampling]

        self._image_x = width
        self._image_y = height
        self._image_bpp = src_channels
        self._image_x_mcu = (width + self._mcu_x - 1) & ~(self._mcu_x - 1)
        self._bpl_xlt = width * self._num_components
        self._bpl_mcu = self._image_x_mcu * self._num_components
        self._mcus_per_row = self._image_x_mcu // self._mcu_x
        self._lines = [bytearray(self._bpl_mcu) for _ in range(self._mcu_y)]
        self._mcu_y_ofs = 0

        self._quant = (
            compute_quant_table(params.quality, STD_LUM_QUANT),
            compute_quant_table(params.quality, STD_CHROMA_QUANT),
        )

        self._out = bytearray()
        self._bit_buffer = 0
        self._bits_in = 0
        self._last_dc = [0, 0, 0]
        self._finished = False

        self._emit_marker(_M_SOI)
        self._emit_jfif_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()
        if not self._writes_ok:
            raise OSError("writing JPEG headers to the stream failed")

    @property
    def finished(self) -> bool:
        return self._finished

    # -- public -----------------------------------------------------------

    def process_scanline(self, scanline: bytes) -> None:
        """Feed one row of ``width * src_channels`` bytes."""
        if self._finished:
            raise RuntimeError("the image has already been finished")
        needed = self._image_x * self._image_bpp
        if len(scanline) < needed:
            raise ValueError(f"scanline needs {needed} bytes, got {len(scanline)}")
        if not self._writes_ok:
            raise OSError("a previous stream write failed")
        self._load_mcu(bytes(scanline))
        if not self._writes_ok:
            raise OSError("writing JPEG data to the stream failed")

    def finish(self) -> None:
        """Flush the last MCU row and write the end-of-image marker."""
        if self._finished:
            raise RuntimeError("the image has already been finished")
        if not self._writes_ok:
            raise OSError("a previous stream write failed")
        if self._mcu_y_ofs:
            last = self._lines[self._mcu_y_ofs - 1]
            for i in range(self._mcu_y_ofs, self._mcu_y):
                self._lines[i][:] = last
            self._process_mcu_row()
        self._put_bits(0x7F, 7)
        self._emit_marker(_M_EOI)
        self._flush()
        self._writes_ok = self._writes_ok and self._put(None)
        self._finished = True
        if not self._writes_ok:
            raise OSError("writing JPEG data to the stream failed")

    # -- output -----------------------------------------------------------

    def _put(self, data: bytes | None) -> bool:
        put_buf = getattr(self._stream, "put_buf", None)
        if put_buf is not None:
            return bool(put_buf(data))
        if data is not None:
            self._stream.write(data)
        return True

    def _flush(self) -> None:
        if self._out:
            self._writes_ok = self._writes_ok and self._put(bytes(self._out))
        self._out = bytearray()

    def _emit_byte(self, value: int) -> None:
        self._out.append(value & 0xFF)
        if len(self._out) == _OUT_BUF_SIZE:
            self._flush()

    def _emit_bytes(self, values: Sequence[int]) -> None:
        for value in values:
            self._emit_byte(value)

    def _emit_word(self, value: int) -> None:
        self._emit_byte(value >> 8)
        self._emit_byte(value & 0xFF)

    def _emit_marker(self, marker: int) -> None:
        self._emit_byte(0xFF)
        self._emit_byte(marker)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer = (self._bit_buffer | (bits << (24 - self._bits_in))) & 0xFFFFFFFF
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            self._emit_byte(c)
            if c == 0xFF:
                self._emit_byte(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8

    # -- headers ----------------------------------------------------------

    def _emit_jfif_app0(self) -> None:
        self._emit_marker(_M_APP0)
        self._emit_word(2 + 4 + 1 + 2 + 1 + 2 + 2 + 1 + 1)
        self._emit_bytes(b"JFIF\x00")
        self._emit_bytes((1, 1, 0))
        self._emit_word(1)
        self._emit_word(1)
        self._emit_bytes((0, 0))

    def _emit_dqt(self) -> None:
        count = 2 if self._num_components == 3 else 1
        for index, table in enumerate(self._quant[:count]):
            self._emit_marker(_M_DQT)
            self._emit_word(64 + 1 + 2)
            self._emit_byte(index)
            self._emit_bytes(table)

    def _emit_sof(self) -> None:
        n = self._num_components
        self._emit_marker(_M_SOF0)
        self._emit_word(3 * n + 2 + 5 + 1)
        self._emit_byte(8)
        self._emit_word(self._image_y)
        self._emit_word(self._image_x)
        self._emit_byte(n)
        for i in range(n):
            h, v = (self._h_samp, self._v_samp) if i == 0 else (1, 1)
            self._emit_bytes((i + 1, (h << 4) + v, 1 if i > 0 else 0))

    def _emit_dht(self, table: int, index: int, ac: bool) -> None:
        bits, val = _HUFF_SPECS[table]
        length = sum(bits[1:17])
        self._emit_marker(_M_DHT)
        self._emit_word(length + 2 + 1 + 16)
        self._emit_byte(index + (16 if ac else 0))
        self._emit_bytes(bits[1:17])
        self._emit_bytes(val[:length])

    def _emit_dhts(self) -> None:
        self._emit_dht(0, 0, False)
        self._emit_dht(2, 0, True)
        if self._num_components == 3:
            self._emit_dht(1, 1, False)
            self._emit_dht(3, 1, True)

    def _emit_sos(self) -> None:
        n = self._num_components
        self._emit_marker(_M_SOS)
        self._emit_word(2 * n + 2 + 1 + 3)
        self._emit_byte(n)
        for i in range(n):
            self._emit_byte(i + 1)
            self._emit_byte(0x00 if i == 0 else 0x11)
        self._emit_bytes((0, 63, 0))

    # -- block loading ----------------------------------------------------

    def _load_block_8_8_grey(self, x: int) -> list[int]:
        start = x << 3
        return [s - 128 for line in self._lines[:8] for s in line[start:start + 8]]

    def _load_block_8_8(self, x: int, y: int, c: int) -> list[int]:
        start = x * 24 + c
        rows = self._lines[y * 8:y * 8 + 8]
        return [s - 128 for line in rows for s in line[start:start + 24:3]]

    def _load_block_16_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        out: list[int] = []
        a, b = 0, 2
        for i in range(0, 16, 2):
            top = self._lines[i][start:start + 48:3]
            bottom = self._lines[i + 1][start:start + 48:3]
            for k in range(8):
                bias = a if k % 2 == 0 else b
                total = top[2 * k] + top[2 * k + 1] + bottom[2 * k] + bottom[2 * k + 1]
                out.append(((total + bias) >> 2) - 128)
            a, b = b, a
        return out

    def _load_block_16_8_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        out: list[int] = []
        for line in self._lines[:8]:
            row = line[start:start + 48:3]
            out.extend(((row[2 * k] + row[2 * k + 1]) >> 1) - 128 for k in range(8))
        return out

    # -- coding -----------------------------------------------------------

    def _quantize(self, samples: list[int], component: int) -> list[int]:
        table = self._quant[1 if component > 0 else 0]
        coefficients: list[int] = []
        for q, pos in zip(table, ZAG):
            j = samples[pos]
            if j < 0:
                j = -j + (q >> 1)
                coefficients.append(0 if j < q else -(j // q))
            else:
                j = j + (q >> 1)
                coefficients.append(0 if j < q else j // q)
        return coefficients

    def _code_coefficients(self, coefficients: list[int], component: int) -> None:
        chroma = 1 if component else 0
        dc_codes, dc_sizes = _HUFF_TABLES[chroma]
        ac_codes, ac_sizes = _HUFF_TABLES[2 + chroma]

        temp1 = temp2 = coefficients[0] - self._last_dc[component]
        self._last_dc[component] = coefficients[0]
        if temp1 < 0:
            temp1 = -temp1
            temp2 -= 1
        nbits = temp1.bit_length()
        self._put_bits(dc_codes[nbits], dc_sizes[nbits])
        if nbits:
            self._put_bits(temp2 & ((1 << nbits) - 1), nbits)

        run_len = 0
        for value in coefficients[1:]:
            if value == 0:
                run_len += 1
                continue
            while run_len >= 16:
                self._put_bits(ac_codes[0xF0], ac_sizes[0xF0])
                run_len -= 16
            temp1 = temp2 = value
            if temp2 < 0:
                temp1 = -temp1
                temp2 -= 1
            nbits = temp1.bit_length()
            symbol = (run_len << 4) + nbits
            self._put_bits(ac_codes[symbol], ac_sizes[symbol])
            self._put_bits(temp2 & ((1 << nbits) - 1), nbits)
            run_len = 0
        if run_len:
            self._put_bits(ac_codes[0], ac_sizes[0])

    def _code_block(self, samples: list[int], component: int) -> None:
        self._code_coefficients(self._quantize(dct2d(samples), component), component)

    def _process_mcu_row(self) -> None:
        code = self._code_block
        for i in range(self._mcus_per_row):
            if self._num_components == 1:
                code(self._load_block_8_8_grey(i), 0)
            elif (self._h_samp, self._v_samp) == (1, 1):
                for c in range(3):
                    code(self._load_block_8_8(i, 0, c), c)
            elif (self._h_samp, self._v_samp) == (2, 1):
                code(self._load_block_8_8(i * 2, 0, 0), 0)
                code(self._load_block_8_8(i * 2 + 1, 0, 0), 0)
                code(self._load_block_16_8_8(i, 1), 1)
                code(self._load_block_16_8_8(i, 2), 2)
            else:
                code(self._load_block_8_8(i * 2, 0, 0), 0)
                code(self._load_block_8_8(i * 2 + 1, 0, 0), 0)
                code(self._load_block_8_8(i * 2, 1, 0), 0)
                code(self._load_block_8_8(i * 2 + 1, 1, 0), 0)
                code(self._load_block_16_8(i, 1), 1)
                code(self._load_block_16_8(i, 2), 2)

    def _load_mcu(self, src: bytes) -> None:
        width = self._image_x
        if self._num_components == 1:
            converted = rgb_to_y(src[:width * 3]) if self._image_bpp == 3 else src[:width]
        else:
            converted = rgb_to_ycc(src[:width * 3]) if self._image_bpp == 3 else y_to_ycc(src[:width])

        line = self._lines[self._mcu_y_ofs]
        line[:self._bpl_xlt] = converted
        pad = self._image_x_mcu - width
        if pad:
            last = converted[-self._num_components:]
            line[self._bpl_xlt:] = last * pad

        self._mcu_y_ofs += 1
        if self._mcu_y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._mcu_y_ofs = 0