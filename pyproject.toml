[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "threshold-ecdsa"
version = "0.1.0"
description = "Threshold ECDSA over secp256k1: GG18 key generation and signing, a phase 7 blame check, and small coordination servers"
requires-python = ">=3.10"
keywords = [
    "ecdsa",
    "threshold-signatures",
    "multi-party-computation",
    "secp256k1",
    "paillier",
    "secret-sharing",
]
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
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "aiohttp",
    "requests",
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
threshold-ecdsa-board = "threshold_ecdsa.kv_board:main"
threshold-ecdsa-keygen = "threshold_ecdsa.gg18_keygen:main"
threshold-ecdsa-rooms = "threshold_ecdsa.rooms:main"
threshold-ecdsa-room-client = "threshold_ecdsa.room_client:main"

[tool.hatch.build.targets.wheel]
packages = ["threshold_ecdsa"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
