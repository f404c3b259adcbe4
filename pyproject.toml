[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "edgelocal"
version = "0.1.0"
description = "Local-server configuration, in-memory stores and request helpers for testing edge compute packages"
requires-python = ">=3.11"
dependencies = []
keywords = [
    "edge",
    "compute",
    "local-testing",
    "fastly.toml",
    "configuration",
    "object-store",
    "secret-store",
    "geolocation",
    "device-detection",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["edgelocal"]

[tool.hatch.build.targets.sdist]
include = ["edgelocal", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
