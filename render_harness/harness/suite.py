"""Harness orchestrator -- one render test from style to captured pixels.

Lifecycle of a run::

    start(style, options, callback)
      -> parse options, arm CompletionGuard (run timeout)
      -> fresh VirtualClock + CanvasDocument (+ fake canvas)
      -> renderer_factory(RendererConfig)            time source = clock
      -> renderer.once("load") ............................. suspend
           -> OperationInterpreter.run(operations)
           -> read back + flip pixels, optional feature query
           -> teardown: remove map, destroy GL context, drop fake canvas
           -> guard.complete(None, pixels, features)

The callback receives ``(error, pixels, features)``.  On failure only the
error is passed, so callbacks should default the other two parameters.
Exactly one call happens per run: success, operation failure, or timeout.

``start`` must run inside an asyncio event loop.  ``render`` is the
awaitable form; ``render_test_sync`` drives a whole run with
``asyncio.run`` for scripts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from render_harness.configs.loader import HarnessConfig, load_config
from render_harness.configs.options import TestOptions
from render_harness.errors import ConfigError
from render_harness.harness.clock import VirtualClock
from render_harness.harness.completion import CompletionGuard
from render_harness.harness.custom_layers import CustomLayerRegistry
from render_harness.harness.interpreter import OperationInterpreter
from render_harness.harness.pixels import PixelBuffer, read_back
from render_harness.harness.renderer import (
    CanvasDocument,
    FakeCanvas,
    Renderer,
    RendererConfig,
    RendererFactory,
    load_renderer_factory,
)
from render_harness.ops.operations import Wait
from src.utils.fs import RGBAImage, load_rgba
from src.utils.logging_config import push_context

logger = logging.getLogger(__name__)

CompletionCallback = Callable[..., Any]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class RenderResult:
    """Captured output of one successful run."""

    pixels: PixelBuffer
    features: list[dict[str, Any]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.pixels.width

    @property
    def height(self) -> int:
        return self.pixels.height


def feature_record(feature: Any) -> dict[str, Any]:
    """Turn a queried feature into a plain dict without its ``layer``."""
    if hasattr(feature, "to_json"):
        record = dict(feature.to_json())
    elif isinstance(feature, Mapping):
        record = dict(feature)
    else:
        raise TypeError(
            f"cannot serialise feature of type {type(feature).__name__}"
        )
    record.pop("layer", None)
    return record


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class RenderHarness:
    """Build renderers and run test cases against them.

    Parameters
    ----------
    renderer_factory : RendererFactory | None
        Callable building a renderer from a ``RendererConfig``.  ``None``
        resolves ``config.renderer.factory``.
    config : HarnessConfig | None
        Harness configuration; ``None`` loads the default ``harness.yaml``.
    custom_layers : CustomLayerRegistry | None
        Registry for ``addCustomLayer``; defaults to the global registry.
    image_loader : Callable[[Path], RGBAImage]
        Decoder for fixture images.

    Raises
    ------
    ConfigError
        If no factory is given and the config names none.
    """

    def __init__(
        self,
        renderer_factory: RendererFactory | None = None,
        *,
        config: HarnessConfig | None = None,
        custom_layers: CustomLayerRegistry | None = None,
        image_loader: Callable[[Path], RGBAImage] = load_rgba,
    ) -> None:
        self._cfg = config if config is not None else load_config()
        if renderer_factory is None:
            if self._cfg.renderer.factory is None:
                raise ConfigError(
                    "No renderer factory: pass one or set renderer.factory in config"
                )
            renderer_factory = load_renderer_factory(self._cfg.renderer.factory)
        self._factory = renderer_factory
        self._custom_layers = custom_layers
        self._load_image = image_loader
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> HarnessConfig:
        return self._cfg

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self,
        style: Any,
        options: TestOptions | Mapping[str, Any],
        callback: CompletionCallback,
        *,
        name: str | None = None,
    ) -> None:
        """Set up one run; *callback* fires once when it finishes.

        Setup problems (bad options, missing fake canvas image, a factory
        that raises) propagate from this call instead of reaching the
        callback.
        """
        loop = asyncio.get_running_loop()
        opts = TestOptions.parse(options)
        opts = opts.model_copy(
            update={"pixel_ratio": opts.effective_pixel_ratio(self._cfg.run.pixel_ratio)}
        )
        timeout_ms = opts.effective_timeout_ms(self._cfg.run.timeout_ms)
        guard = CompletionGuard(callback, timeout_ms, loop=loop)

        def on_load(*_: Any) -> None:
            task = loop.create_task(
                self._run_after_load(renderer, opts, clock, document, guard, name)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        try:
            clock = VirtualClock()
            document = CanvasDocument()
            if opts.add_fake_canvas is not None:
                image = self._load_image(
                    self._cfg.fixtures_dir / opts.add_fake_canvas.image
                )
                document.append(FakeCanvas.from_image(opts.add_fake_canvas.id, image))

            renderer = self._factory(self._renderer_config(style, opts, clock, document))
            self._apply_debug_flags(renderer, opts)
            renderer.once("load", on_load)
        except BaseException:
            guard.cancel()
            raise

        logger.info(
            "Starting render test %s (%dx%d @%gx, %d operation(s), timeout %.0f ms)",
            name or "<unnamed>", opts.width, opts.height, opts.pixel_ratio,
            len(opts.operations), timeout_ms,
        )

    async def render(
        self,
        style: Any,
        options: TestOptions | Mapping[str, Any],
        *,
        name: str | None = None,
    ) -> RenderResult:
        """Run one test case and return its capture.

        Raises
        ------
        HarnessTimeout
            If the run exceeds its timeout.
        Exception
            Whatever an operation, the capture, or teardown raised.
        """
        loop = asyncio.get_running_loop()
        done: asyncio.Future[RenderResult] = loop.create_future()

        def on_complete(
            error: BaseException | None,
            pixels: PixelBuffer | None = None,
            features: list[dict[str, Any]] | None = None,
        ) -> None:
            if done.done():
                return
            if error is not None:
                done.set_exception(error)
            else:
                done.set_result(RenderResult(pixels=pixels, features=features or []))

        self.start(style, options, on_complete, name=name)
        return await done

    def render_sync(
        self,
        style: Any,
        options: TestOptions | Mapping[str, Any],
        *,
        name: str | None = None,
    ) -> RenderResult:
        """Run ``render`` on a fresh event loop (scripts, no loop running)."""
        return asyncio.run(self.render(style, options, name=name))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _renderer_config(
        self,
        style: Any,
        opts: TestOptions,
        clock: VirtualClock,
        document: CanvasDocument,
    ) -> RendererConfig:
        return RendererConfig(
            style=style,
            width=opts.width,
            height=opts.height,
            device_pixel_ratio=opts.pixel_ratio,
            classes=opts.classes,
            interactive=False,
            attribution_control=False,
            preserve_drawing_buffer=True,
            axonometric=opts.axonometric,
            skew=opts.skew,
            fade_duration=opts.fade_duration,
            local_ideograph_font_family=opts.local_ideograph_font_family,
            cross_source_collisions=opts.cross_source_collisions,
            require_access_token=False,
            time_source=clock.now,
            document=document,
        )

    @staticmethod
    def _apply_debug_flags(renderer: Renderer, opts: TestOptions) -> None:
        # Never let the render loop go idle between operations
        renderer.repaint = True
        if opts.debug:
            renderer.show_tile_boundaries = True
        if opts.show_overdraw_inspector:
            renderer.show_overdraw_inspector = True
        if opts.show_padding:
            renderer.show_padding = True

    async def _run_after_load(
        self,
        renderer: Renderer,
        opts: TestOptions,
        clock: VirtualClock,
        document: CanvasDocument,
        guard: CompletionGuard,
        name: str | None,
    ) -> None:
        if name:
            push_context(test=name)

        operations = list(opts.operations)
        if opts.collision_debug:
            renderer.show_collision_boxes = True
            # Trailing settle pass so collision boxes reflect final placement
            operations.append(Wait())

        interpreter = OperationInterpreter(
            renderer,
            clock,
            document=document,
            fixtures_dir=self._cfg.fixtures_dir,
            custom_layers=self._custom_layers,
            fake_canvas_id=opts.add_fake_canvas.id if opts.add_fake_canvas else None,
            image_loader=self._load_image,
        )

        error: Exception | None = None
        pixels: PixelBuffer | None = None
        features: list[dict[str, Any]] = []
        try:
            await interpreter.run(operations)
            pixels = read_back(renderer)
            if opts.query_geometry is not None:
                found = renderer.query_rendered_features(
                    opts.query_geometry, dict(opts.query_options or {}),
                )
                features = [feature_record(f) for f in found]
        except Exception as exc:
            error = exc

        try:
            self._teardown(renderer, document, opts)
        except Exception as exc:
            if error is None:
                error = exc
            else:
                logger.warning("Teardown after failure also failed: %s", exc)

        if error is not None:
            logger.error(
                "Render test failed after %d operation(s): %s",
                len(interpreter.executed), error, exc_info=error,
            )
            guard.complete(error)
            return

        logger.info(
            "Captured %dx%d pixels, %d feature(s)",
            pixels.width, pixels.height, len(features),
        )
        guard.complete(None, pixels, features)

    @staticmethod
    def _teardown(
        renderer: Renderer,
        document: CanvasDocument,
        opts: TestOptions,
    ) -> None:
        try:
            renderer.remove()
            # The GL context outlives the map object unless destroyed explicitly
            renderer.destroy_context()
        finally:
            if opts.add_fake_canvas is not None:
                document.remove(opts.add_fake_canvas.id)


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------


def render_test(
    style: Any,
    options: TestOptions | Mapping[str, Any],
    callback: CompletionCallback,
    *,
    renderer_factory: RendererFactory | None = None,
    config: HarnessConfig | None = None,
    custom_layers: CustomLayerRegistry | None = None,
    name: str | None = None,
) -> None:
    """Callback-style entry point; must be called inside a running loop."""
    harness = RenderHarness(
        renderer_factory, config=config, custom_layers=custom_layers,
    )
    harness.start(style, options, callback, name=name)


async def render_test_async(
    style: Any,
    options: TestOptions | Mapping[str, Any],
    *,
    renderer_factory: RendererFactory | None = None,
    config: HarnessConfig | None = None,
    custom_layers: CustomLayerRegistry | None = None,
    name: str | None = None,
) -> RenderResult:
    """Awaitable entry point returning the capture or raising the error."""
    harness = RenderHarness(
        renderer_factory, config=config, custom_layers=custom_layers,
    )
    return await harness.render(style, options, name=name)


def render_test_sync(
    style: Any,
    options: TestOptions | Mapping[str, Any],
    **kwargs: Any,
) -> RenderResult:
    """Run one test case to completion on a fresh event loop."""
    return asyncio.run(render_test_async(style, options, **kwargs))
