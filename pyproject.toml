[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "synclink"
version = "0.1.0"
description = "Move files and folders into a sync directory and leave symbolic links in their place"
requires-python = ">=3.10"
keywords = ["sync", "symlink", "shortcut", "dotfiles", "configuration", "backup"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: System Administrators",
    "Natural Language :: Chinese (Simplified)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Utilities",
]
dependencies = [
    "termcolor",
    "tabulate",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
synclink = "synclink.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["synclink"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
