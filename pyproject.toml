[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "airmirror"
version = "0.1.0"
description = "Building blocks for an AirPlay screen-mirroring receiver: RTSP/HTTP parsing, pairing, stream decryption and a small connection server."
requires-python = ">=3.10"
keywords = ["airplay", "mirroring", "rtsp", "pairing", "x25519", "ed25519", "aes-ctr"]
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
    "Topic :: Multimedia :: Video :: Display",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["airmirror"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
