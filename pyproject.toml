[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dagrun"
version = "0.2.0"
description = "Run tasks with dependencies as a directed acyclic graph, from code or YAML files"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["dag", "task", "scheduler", "workflow", "dependency", "yaml"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
dagrun = "dagrun.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dagrun"]

[tool.pytest.ini_options]
addopts = "-ra"
