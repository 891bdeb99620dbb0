[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "armik7"
version = "0.1.0"
description = "Analytic inverse kinematics for seven-joint arms with a redundancy search over a free joint"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["inverse kinematics", "robotics", "7-dof", "arm", "kinematics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["armik7"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
