[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rulecheck"
version = "0.1.0"
description = "Run test cases for regular-expression code rules, with snapshot baselines and interactive review"
requires-python = ">=3.10"
keywords = ["lint", "rules", "testing", "snapshots", "yaml", "regex"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
rulecheck = "rulecheck.verify:main"

[tool.hatch.build.targets.wheel]
packages = ["rulecheck"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
