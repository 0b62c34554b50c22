[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pantyhose"
version = "0.1.0"
description = "Building blocks for clustered game servers: timers, tasks, sessions, session groups, routing and RPC dispatch."
requires-python = ">=3.10"
dependencies = []
keywords = ["game server", "sessions", "rpc", "routing", "timers", "cluster"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pantyhose"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
