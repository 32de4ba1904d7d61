[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "dockclamp"
version = "0.1.0"
description = "Dock detection and clamp locking controller with per-endpoint state machines and a broadcast status protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["dock", "clamp", "lock", "state machine", "controller", "simulation", "crc16"]
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
    "Topic :: Home Automation",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dockclamp = "dockclamp.app:main"

[tool.setuptools.packages.find]
include = ["dockclamp*"]

[tool.pytest.ini_options]
addopts = "-ra"
