[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wisdompow"
version = "0.1.0"
description = "Quote server guarded by an Argon2id proof-of-work challenge, with a matching client"
requires-python = ">=3.10"
keywords = ["proof-of-work", "argon2", "tcp", "quotes", "ddos-protection"]
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
    "Topic :: Internet",
    "Topic :: Security",
]
dependencies = [
    "cryptography>=44",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
wisdompow-server = "wisdompow.server:main"
wisdompow-client = "wisdompow.client:main"

[tool.hatch.build.targets.wheel]
packages = ["wisdompow"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
