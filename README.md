# camframe

Pure-Python conversions for raw camera frames, and a small UDP link that
answers a capture command by streaming a frame to a listening host.

## What it does

- **JPEG encoding** (`camframe.tojpg`) of RGB888, RGB565, YUV422 and
  grayscale buffers with a baseline encoder. Colour images are encoded with
  H2V2 chroma subsampling, grayscale images as luminance only. Quality is
  clamped into 1–100.
- **BMP output** (`camframe.tobmp`) from RGB888, RGB565, YUV422 and
  grayscale buffers, written as a top-down bitmap: 24-bit for colour
  formats, 8-bit with a gray palette for grayscale.
- **24-bit expansion** with `fmt2rgb888(src, fmt)`, which returns pixels in
  the byte order a BMP stores them (RGB888 input is returned unchanged).
- **YUV to RGB** of a single sample with `camframe.yuv.yuv2rgb(y, u, v)`,
  which returns an `(r, g, b)` tuple and raises `ValueError` for values
  outside 0..255.
- **A capture link** (`camframe.camera_link`) that listens for UDP commands
  and, on `capture image`, sends a frame in datagrams followed by
  `successful`.

## Installation

```
pip install .
```

No third-party packages are needed at run time.

## Frames and formats

`camframe.formats.PixFormat` lists the layouts: `RGB565`, `YUV422`,
`GRAYSCALE`, `JPEG` and `RGB888`; `bytes_per_pixel` is `None` for `JPEG`
and `is_compressed` tells the two kinds apart. A `Frame(buf, width, height,
format)` bundles a buffer with its dimensions and format; `pixel_count` and
`expected_size` give the sizes it implies.

## Converting frames

```python
from camframe.formats import Frame, PixFormat
from camframe.tojpg import fmt2jpg, frame2jpg
from camframe.tobmp import fmt2bmp, fmt2rgb888, frame2bmp

gray = bytes(range(64))            # an 8x8 grayscale image

jpeg = fmt2jpg(gray, 8, 8, PixFormat.GRAYSCALE, 80)
bmp = fmt2bmp(gray, 8, 8, PixFormat.GRAYSCALE)
rgb = fmt2rgb888(gray, PixFormat.GRAYSCALE)

frame = Frame(gray, 8, 8, PixFormat.GRAYSCALE)
assert frame2jpg(frame, 80) == jpeg
assert frame2bmp(frame) == bmp
```

`fmt2jpg` collects its output in a buffer of `JPG_BUF_LEN` (128 KiB); output
beyond that is dropped. To receive the JPEG in pieces instead, use
`fmt2jpg_cb(src, width, height, fmt, quality, cb)` or
`frame2jpg_cb(frame, quality, cb)`: `cb(offset, chunk)` is called for each
piece and may return how many bytes it took (`None` means all); it is called
once more with an empty chunk when the image is complete.

`convert_line_format(src, fmt, width, line)` returns one row as RGB bytes
(grey bytes for grayscale), and `convert_image(src, width, height, fmt,
quality, stream)` encodes into any stream object.

Bad input raises `ValueError`: JPEG buffers given to a converter, source
buffers that are too short, or YUV422 rows of odd width.

## The encoder

`camframe.encoder.JpegEncoder(stream, width, height, src_channels, params)`
writes a baseline JPEG as scanlines arrive. `stream` is either an object
with `put_buf(data)` returning a success flag (called with `None` at the
end) or any object with `write`, such as `io.BytesIO`. `src_channels` is 1
(grey) or 3 (RGB). `Params(quality, subsampling)` takes a quality of 1..100
and a `Subsampling` of `Y_ONLY`, `H1V1`, `H2V1` or `H2V2`; `Params.check()`
tells whether they are usable.

```python
import io
from camframe.encoder import JpegEncoder, Params, Subsampling

out = io.BytesIO()
encoder = JpegEncoder(out, 16, 16, 3, Params(90, Subsampling.H1V1))
for _ in range(16):
    encoder.process_scanline(bytes([255, 0, 0]) * 16)
encoder.finish()
```

Invalid arguments raise `ValueError`, a failed stream write raises
`OSError`, and using the encoder after `finish` raises `RuntimeError`.

## The capture link

`LinkConfig` holds the target `host` and `target_port` (default
`192.168.1.162:3333`), the `listen_host` and `listen_port` the server binds
(default `0.0.0.0:12345`), the datagram `packet_size` (1024), the
`recv_size` for commands (127) and the receive `timeout` in seconds (10).

- `send_string(message, config)` sends one datagram and returns the bytes
  sent.
- `send_image(frame, config)` sends the frame buffer in chunks of at most
  `packet_size` bytes. If a chunk fails it sends `fail` and stops; it always
  ends with `successful`. It returns the number of image bytes delivered.
- `CommandServer(capture, config)` calls `capture()` for a frame whenever
  `handle(payload, source)` sees `capture image`; `handle` returns `True`
  when an image was sent. `serve_forever()` receives commands until
  `stop_event` is set, rebinding after socket errors; `bound` is set and
  `server_address` filled in once the socket is bound.

To run the command server from a shell, answering every capture command
with the contents of a JPEG file:

```
camframe-link picture.jpg --host 192.168.1.162 --port 3333 --listen-port 12345
```

Options: `--host`, `--port`, `--listen-host`, `--listen-port`, `--timeout`.

## What it does not do

- It does not decode JPEG: JPEG frames cannot be turned into BMP or RGB888
  here.
- It does not drive a camera. Frames come from whatever `capture` callable
  you supply; the `camframe-link` command only re-sends a file.
- It does not set up a network connection; the host must already be
  reachable.

## Running the tests

```
pip install ".[test]"
pytest
```