[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "camframe"
version = "0.1.0"
description = "Raw camera frame conversions (JPEG, BMP, RGB888, YUV) and a UDP capture-command link"
requires-python = ">=3.10"
dependencies = []
keywords = ["jpeg", "bmp", "yuv", "rgb565", "camera", "udp", "image conversion"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
camframe-link = "camframe.camera_link:main"

[tool.hatch.build.targets.wheel]
packages = ["camframe"]

[tool.pytest.ini_options]
addopts = "-ra"
