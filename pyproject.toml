[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "p4fusion"
version = "1.13.0"
description = "Building blocks for turning Perforce changelist history into Git commits, with branch and merge tracking."
requires-python = ">=3.10"
dependencies = []
keywords = ["perforce", "p4", "git", "migration", "version-control", "history"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["p4fusion"]

[tool.hatch.build.targets.sdist]
include = ["p4fusion", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
