[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ledmqtt"
version = "0.1.0"
description = "MQTT 3.1.1 packet codec and client for a broker-controlled smart LED strip"
requires-python = ">=3.10"
dependencies = []
keywords = ["mqtt", "led", "ws2812", "smart-home", "home-automation", "iot"]
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
    "Topic :: Home Automation",
    "Topic :: Communications",
    "Topic :: Internet",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ledmqtt = "ledmqtt.app:main"

[tool.hatch.build.targets.wheel]
packages = ["ledmqtt"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
