[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fatboot"
version = "0.1.0"
description = "Read FAT12/16/32 disk images, load ELF executables and emulate a small boot-time text console"
requires-python = ">=3.10"
dependencies = []
keywords = ["fat", "fat12", "fat16", "fat32", "filesystem", "disk image", "elf", "mbr", "gdt", "idt", "printf"]
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
    "Topic :: System :: Filesystems",
    "Topic :: System :: Boot",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
fatboot = "fatboot.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["fatboot"]

[tool.hatch.build.targets.sdist]
include = ["fatboot", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
