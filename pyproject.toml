[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "liquidsel"
version = "0.1.0"
description = "Row selections, projection masks and batch-granular column caching for columnar scans"
requires-python = ">=3.10"
dependencies = []
keywords = ["columnar", "parquet", "row selection", "cache", "predicate pushdown"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["liquidsel"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
