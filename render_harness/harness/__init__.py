"""
Harness runtime module.

Provides the virtual clock, the exactly-once completion guard, pixel
readback, the operation interpreter and the orchestrator that ties them
to a renderer instance.
"""

from render_harness.harness.clock import VirtualClock
from render_harness.harness.completion import CompletionGuard
from render_harness.harness.custom_layers import (
    CustomLayerRegistry,
    default_registry,
    register_custom_layer,
)
from render_harness.harness.interpreter import OperationInterpreter
from render_harness.harness.pixels import PixelBuffer, flip_rows, read_back
from render_harness.harness.renderer import (
    CanvasDocument,
    FakeCanvas,
    Renderer,
    RendererConfig,
    load_renderer_factory,
)
from render_harness.harness.suite import (
    RenderHarness,
    RenderResult,
    render_test,
    render_test_async,
    render_test_sync,
)

__all__ = [
    "CanvasDocument",
    "CompletionGuard",
    "CustomLayerRegistry",
    "FakeCanvas",
    "OperationInterpreter",
    "PixelBuffer",
    "RenderHarness",
    "RenderResult",
    "Renderer",
    "RendererConfig",
    "VirtualClock",
    "default_registry",
    "flip_rows",
    "load_renderer_factory",
    "read_back",
    "register_custom_layer",
    "render_test",
    "render_test_async",
    "render_test_sync",
]
