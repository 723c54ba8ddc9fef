[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dbstress"
version = "0.1.0"
description = "Insert/select stress workload for a wide-column key/value table, with deterministic pseudo-random data generators"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "stress", "benchmark", "load-testing", "prng", "key-value"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dbstress"]

[tool.pytest.ini_options]
addopts = "-ra"
