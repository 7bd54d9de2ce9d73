[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chainlog"
version = "0.1.0"
description = "Structured JSON log events built from chained field methods, with a human-friendly console writer and a non-blocking diode writer."
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "structured-logging", "json", "console", "log-formatting"]
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
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
chainlog-pretty = "chainlog.prettylog:main"

[tool.hatch.build.targets.wheel]
packages = ["chainlog"]

[tool.hatch.build.targets.sdist]
include = ["chainlog", "tests", "README.md", "pyproject.toml"]

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
