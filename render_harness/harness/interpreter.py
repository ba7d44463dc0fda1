"""Operation interpreter -- replays a test script against a live renderer.

Operations run strictly in list order.  Most complete synchronously
inside the current loop turn; only two kinds suspend:

``Wait()``
    Until ``renderer.loaded()`` is true.  A ``render`` listener re-checks
    after every frame and resolves a single future once loaded; there is
    no fixed timeout here, the run-level ``CompletionGuard`` covers it.
``Sleep(ms)``
    Real wall-clock time via ``asyncio.sleep``.

``Wait(ms)`` does **not** suspend: it advances the virtual clock and
draws one frame before the next operation starts.

Nothing is retried.  An exception from any operation propagates out of
``run()`` and ends the script.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Callable, Iterable

from render_harness.errors import OperationError
from render_harness.harness.clock import VirtualClock
from render_harness.harness.custom_layers import CustomLayerRegistry, default_registry
from render_harness.harness.renderer import CanvasDocument, Renderer
from render_harness.ops.operations import (
    AddCustomLayer,
    AddImage,
    MethodCall,
    Operation,
    PauseSource,
    SetStyle,
    Sleep,
    UpdateFakeCanvas,
    Wait,
)
from src.utils.fs import RGBAImage, load_rgba

logger = logging.getLogger(__name__)

# Local ideograph generation stays off so CJK glyphs come from the
# fixture glyph PBFs on every machine.
SET_STYLE_OPTIONS = {"localIdeographFontFamily": False}

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class OperationInterpreter:
    """Apply test operations to one renderer.

    Parameters
    ----------
    renderer : Renderer
        Live renderer; must already have fired ``load``.
    clock : VirtualClock
        The run's clock, also installed as the renderer's time source.
    document : CanvasDocument
        Hosting document holding any fake canvas.
    fixtures_dir : str | Path
        Root that image paths in operations are relative to.
    custom_layers : CustomLayerRegistry | None
        Registry for ``AddCustomLayer``; defaults to the global one.
    fake_canvas_id : str | None
        Element id of the fake canvas, from the ``addFakeCanvas`` option.
    image_loader : Callable[[Path], RGBAImage]
        Decoder for fixture images.
    """

    def __init__(
        self,
        renderer: Renderer,
        clock: VirtualClock,
        *,
        document: CanvasDocument,
        fixtures_dir: str | Path,
        custom_layers: CustomLayerRegistry | None = None,
        fake_canvas_id: str | None = None,
        image_loader: Callable[[Path], RGBAImage] = load_rgba,
    ) -> None:
        self._renderer = renderer
        self._clock = clock
        self._document = document
        self._fixtures_dir = Path(fixtures_dir)
        self._custom_layers = (
            custom_layers if custom_layers is not None else default_registry
        )
        self._fake_canvas_id = fake_canvas_id
        self._load_image = image_loader
        self.executed: list[Operation] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, operations: Iterable[Operation]) -> None:
        """Execute *operations* in order, suspending where required.

        Returns once the list is exhausted; the caller then captures.
        """
        ops = list(operations)
        logger.info("Applying %d operation(s)", len(ops))

        for idx, op in enumerate(ops):
            logger.debug("[%d/%d] %s", idx + 1, len(ops), op.to_wire())
            await self._apply(op)
            self.executed.append(op)

        logger.info("All operations applied")

    # ------------------------------------------------------------------
    # Internal: per-operation dispatch
    # ------------------------------------------------------------------

    async def _apply(self, op: Operation) -> None:
        if isinstance(op, Wait):
            if op.duration_ms is not None:
                self._advance(op.duration_ms)
            else:
                await self._wait_until_loaded()
        elif isinstance(op, Sleep):
            await asyncio.sleep(op.duration_ms / 1000.0)
        elif isinstance(op, AddImage):
            self._add_image(op)
        elif isinstance(op, AddCustomLayer):
            self._add_custom_layer(op)
        elif isinstance(op, UpdateFakeCanvas):
            self._update_fake_canvas(op)
        elif isinstance(op, SetStyle):
            self._renderer.set_style(op.style, dict(SET_STYLE_OPTIONS))
        elif isinstance(op, PauseSource):
            self._pause_source(op)
        elif isinstance(op, MethodCall):
            self._call_method(op)
        else:
            raise OperationError(f"Unsupported operation: {type(op).__name__}")

    # ------------------------------------------------------------------
    # Individual operations
    # ------------------------------------------------------------------

    def _advance(self, duration_ms: float) -> None:
        now = self._clock.advance(duration_ms)
        logger.debug("Virtual clock advanced to %.1f ms", now)
        self._renderer.render()

    async def _wait_until_loaded(self) -> None:
        if self._renderer.loaded():
            return

        loop = asyncio.get_running_loop()
        done: asyncio.Future[None] = loop.create_future()

        def on_render(*_: Any) -> None:
            if not done.done() and self._renderer.loaded():
                done.set_result(None)

        self._renderer.on("render", on_render)
        try:
            await done
        finally:
            self._renderer.off("render", on_render)
        logger.debug("Renderer reports loaded")

    def _add_image(self, op: AddImage) -> None:
        image = self._load_image(self._fixtures_dir / op.path)
        self._renderer.add_image(op.image_id, image, dict(op.options))
        logger.debug(
            "Added image %r (%dx%d) from %s",
            op.image_id, image.width, image.height, op.path,
        )

    def _add_custom_layer(self, op: AddCustomLayer) -> None:
        layer = self._custom_layers.create(op.layer)
        self._renderer.add_layer(layer, op.before)
        self._renderer.render()

    def _update_fake_canvas(self, op: UpdateFakeCanvas) -> None:
        if self._fake_canvas_id is None:
            raise OperationError(
                "updateFakeCanvas requires the addFakeCanvas test option"
            )
        canvas = self._document.get_element_by_id(self._fake_canvas_id)
        if canvas is None:
            raise OperationError(
                f"fake canvas {self._fake_canvas_id!r} is not in the document"
            )
        source = self._renderer.get_source(op.source_id)
        if source is None:
            raise OperationError(f"no source named {op.source_id!r}")

        source.play()
        # Rendered: the source snapshots this frame when it pauses
        canvas.update(self._load_image(self._fixtures_dir / op.pre_pause_image))
        source.pause()
        # Not rendered: a paused source ignores canvas changes
        canvas.update(self._load_image(self._fixtures_dir / op.post_pause_image))
        self._renderer.render()

    def _pause_source(self, op: PauseSource) -> None:
        try:
            cache = self._renderer.source_caches[op.source_id]
        except KeyError:
            raise OperationError(f"no source cache named {op.source_id!r}") from None
        cache.pause()

    def _call_method(self, op: MethodCall) -> None:
        # Fixtures spell methods camelCase; Python bindings may not
        for name in dict.fromkeys((op.method, _snake_case(op.method))):
            method = getattr(self._renderer, name, None)
            if callable(method):
                method(*op.args)
                return
        logger.debug("Renderer has no method %r; skipping", op.method)


def _snake_case(name: str) -> str:
    """``setPaintProperty`` -> ``set_paint_property``."""
    return _CAMEL_RE.sub("_", name).lower()
