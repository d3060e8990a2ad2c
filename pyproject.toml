[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtosc"
version = "0.1.0"
description = "Typed OSC argument values, their comparison, OSC time tags, automation slots and MIDI learn mapping"
requires-python = ">=3.10"
dependencies = []
keywords = ["osc", "open sound control", "midi", "midi learn", "automation", "audio"]
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
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rtosc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
