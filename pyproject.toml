[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "garfield"
version = "0.2.0"
description = "Query and explore a knowledge graph of source code stored as JSON"
requires-python = ">=3.10"
dependencies = []
keywords = ["knowledge-graph", "code-analysis", "graph", "query", "documentation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Documentation",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
garfield = "garfield.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["garfield"]

[tool.pytest.ini_options]
addopts = "-ra"
