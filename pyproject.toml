[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "comlink"
version = "0.1.0"
description = "Causal-order multicast building blocks: vector clocks, membership, context graphs, stability, masks, wire encoding and durable key/value storage"
requires-python = ">=3.10"
dependencies = []
keywords = ["vector-clock", "causal-order", "multicast", "context-graph", "distributed-systems", "replication"]
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
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["comlink"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
