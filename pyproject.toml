[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "temporalkit"
version = "0.1.0"
description = "Helpers for workflow command-line tooling: durations, free ports, command specifications with code and docs generation, history flattening, reset logic and listing."
requires-python = ">=3.10"
keywords = ["workflow", "cli", "codegen", "history", "duration", "ports"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["temporalkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
