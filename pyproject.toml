[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "divinebridge"
version = "0.1.0"
description = "Building blocks for bridging Nostr video content to the AT Protocol: shared types, a feed generator, label signing and queries, handle-gateway clients and a localnet handle admin service."
requires-python = ">=3.10"
keywords = ["atproto", "nostr", "bluesky", "labeler", "feed-generator", "bridge", "dns"]
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
    "Framework :: AsyncIO",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "starlette>=0.36",
    "httpx>=0.27",
    "cbor2>=5.6",
    "cryptography>=42",
    "uvicorn>=0.29",
]

[project.optional-dependencies]
test = [
    "pytest>=8",
    "pytest-asyncio>=0.23",
    "httpx>=0.27",
]

[project.scripts]
divinebridge-localnet-admin = "divinebridge.localnet_admin:main"

[tool.hatch.build.targets.wheel]
packages = ["divinebridge"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
