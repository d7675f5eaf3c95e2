[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ornithe-installer"
version = "0.1.4"
description = "Install the Ornithe mod loader setup for Minecraft clients, servers and MultiMC/PrismLauncher instances"
requires-python = ">=3.10"
keywords = ["minecraft", "ornithe", "fabric", "quilt", "installer", "multimc", "prismlauncher"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
ornithe-installer = "ornithe_installer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ornithe_installer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
