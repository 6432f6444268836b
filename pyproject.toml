[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kantra"
version = "0.1.0"
description = "Container command construction and analysis profile handling for application analysis"
requires-python = ">=3.10"
keywords = ["analysis", "containers", "podman", "docker", "profiles", "migration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kantra"]

[tool.pytest.ini_options]
addopts = "-ra"
