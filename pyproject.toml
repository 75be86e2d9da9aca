[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pcpatch"
version = "0.1.0"
description = "Per-dimension compression of point cloud values: run-length, significant bits and zlib"
requires-python = ">=3.10"
dependencies = []
keywords = ["point cloud", "lidar", "compression", "run-length", "significant bits", "gis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: System :: Archiving :: Compression",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pcpatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
