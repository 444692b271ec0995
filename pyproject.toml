[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "micromatch"
version = "0.1.0"
description = "A price-time priority order matching engine with simulated A/B market data feeds and arbitrage detection"
requires-python = ">=3.10"
dependencies = [
    "sortedcontainers",
]
keywords = [
    "matching-engine",
    "order-book",
    "trading",
    "market-data",
    "arbitrage",
    "simulation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
micromatch-demo = "micromatch.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["micromatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
