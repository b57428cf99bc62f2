"""Raw camera frame conversions to JPEG, BMP and 24-bit pixels, and a UDP capture link."""

__version__ = "0.1.0"