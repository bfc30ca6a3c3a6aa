[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hlfsdk"
version = "0.1.0"
description = "Client-side helpers for Hyperledger Fabric: MSP identities, local discovery, composite keys, validation flags and MSP certificates"
requires-python = ">=3.10"
keywords = ["hyperledger", "fabric", "blockchain", "msp", "identity", "discovery"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries",
]
dependencies = [
    "cryptography",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["hlfsdk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
