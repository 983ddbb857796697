[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqfsread"
version = "0.1.0"
description = "Read-only building blocks for SquashFS images: on-disk records, lookup tables, xattrs, inode numbering and tree traversal"
requires-python = ">=3.10"
dependencies = []
keywords = ["squashfs", "filesystem", "fuse", "xattr", "read-only", "image"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sqfsread"]

[tool.hatch.build.targets.sdist]
include = ["sqfsread", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
