[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fwpackage"
version = "0.1.0"
description = "Build and unpack firmware packages: gzip-compressed TAR archives that carry a firmware.xml manifest"
requires-python = ">=3.10"
dependencies = []
keywords = ["firmware", "package", "tar", "gzip", "manifest", "pit"]
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
    "Topic :: System :: Archiving :: Packaging",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fwpackage"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
