[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hubwire"
version = "0.1.0"
description = "Building blocks for the SignalR hub protocol: JSON framing, message types, hub connections, invocation tracking and hub lifetime management"
requires-python = ">=3.10"
dependencies = []
keywords = ["signalr", "rpc", "hub", "streaming", "json", "protocol"]
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
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hubwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
