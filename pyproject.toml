[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "heapgraph"
version = "0.1.0"
description = "Memory graphs of heap dumps, and feature embeddings of their chunks and blocks for key detection."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "heap",
    "memory-forensics",
    "graph",
    "embedding",
    "feature-extraction",
    "ssh",
    "malloc",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Information Technology",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["heapgraph"]

[tool.hatch.build.targets.sdist]
include = [
    "heapgraph",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
