[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "relaymodbus"
version = "0.1.0"
description = "Modbus RTU master and slave over a serial line, with an 8-relay board exposed as Modbus coils, inputs and registers"
requires-python = ">=3.10"
keywords = ["modbus", "modbus-rtu", "rs485", "serial", "relay", "home-automation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Terminals :: Serial",
]
dependencies = [
    "pyserial>=3.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
]

[project.scripts]
relaymodbus = "relaymodbus.app:main"

[tool.hatch.build.targets.wheel]
packages = ["relaymodbus"]

[tool.hatch.build.targets.sdist]
include = ["relaymodbus", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
