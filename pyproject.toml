[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tonic"
version = "0.1.0"
description = "Request context, error collection and content negotiation for small HTTP web applications"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "web", "context", "content-negotiation", "middleware"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tonic"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
