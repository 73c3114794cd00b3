[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kdeclare"
version = "0.1.0"
description = "Declarative reconciliation of rendered manifests against a target cluster client"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["kubernetes", "reconciler", "manifest", "declarative", "server-side-apply"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kdeclare"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
