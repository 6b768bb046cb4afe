[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "confchat"
version = "0.1.0"
description = "A small text conferencing server and client with sessions, invitations and a fixed-size binary packet format"
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "conferencing", "tcp", "sessions", "client-server"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Conferencing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
confchat-server = "confchat.server:main"
confchat-client = "confchat.client:main"

[tool.hatch.build.targets.wheel]
packages = ["confchat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
