[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "legacyhttp"
version = "0.1.0"
description = "An asyncio HTTP client core with request-target forms, pool keys, idle connection reuse and retry of canceled requests"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "client", "connection-pool", "keep-alive", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Framework :: AsyncIO",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["legacyhttp"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
