"""Harness configuration loading and per-test option validation."""

from render_harness.configs.loader import (
    HarnessConfig,
    LoggingConfig,
    RendererBindingConfig,
    RunConfig,
    config_from_dict,
    load_config,
)
from render_harness.configs.options import FakeCanvasOptions, TestOptions
from render_harness.errors import ConfigError

__all__ = [
    "ConfigError",
    "FakeCanvasOptions",
    "HarnessConfig",
    "LoggingConfig",
    "RendererBindingConfig",
    "RunConfig",
    "TestOptions",
    "config_from_dict",
    "load_config",
]
