[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jsonwriter"
version = "0.1.0"
description = "A buffered JSON output stream with typed value encoders for numbers, strings, byte strings, sequences and objects."
requires-python = ">=3.10"
dependencies = []
keywords = ["json", "encoder", "serialization", "stream", "writer"]
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
    "Topic :: File Formats :: JSON",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["jsonwriter"]

[tool.pytest.ini_options]
addopts = "-ra"
