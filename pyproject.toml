[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "babo"
version = "0.1.0"
description = "A small WebSocket game server with login, matchmaking and two-player rooms"
requires-python = ">=3.10"
keywords = ["game server", "websocket", "matchmaking", "protobuf", "snowflake"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "pyyaml",
    "sqlalchemy",
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
babo-game-server = "babo.app:main"
babo-virtual-client = "babo.virtual_client:main"

[tool.hatch.build.targets.wheel]
packages = ["babo"]

[tool.hatch.build.targets.sdist]
include = ["babo", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
