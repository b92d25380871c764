[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dockerh"
version = "0.1.0"
description = "Helpers for starting, inspecting and removing Docker containers for integration tests."
requires-python = ">=3.10"
dependencies = []
keywords = ["docker", "containers", "integration-testing", "kafka", "redis", "postgres", "mysql"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dockerh"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
