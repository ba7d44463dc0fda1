"""Renderer boundary: the map engine contract and the DOM shim pieces.

The map engine itself is an external collaborator.  The harness only
relies on the surface described by ``Renderer``; any object satisfying
it (a native binding, a headless GL build, a test double) can be
plugged in through a *renderer factory*::

    def make_renderer(config: RendererConfig) -> Renderer: ...

Factories are usually named in config as ``"package.module:attr"`` and
resolved with ``load_renderer_factory``.

Fake canvases
-------------
Canvas-backed sources read their frames from a canvas element found by
id in the hosting document.  ``CanvasDocument`` is that document for
off-screen runs and ``FakeCanvas`` the element, whose backing pixels the
harness swaps between renders.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

from src.utils.fs import RGBAImage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Renderer contract
# ---------------------------------------------------------------------------


@runtime_checkable
class Source(Protocol):
    """Source object returned by ``Renderer.get_source`` (canvas sources)."""

    def play(self) -> None: ...

    def pause(self) -> None: ...


@runtime_checkable
class SourceCache(Protocol):
    """Per-source tile cache; pausing stops further tile requests."""

    def pause(self) -> None: ...


@runtime_checkable
class Renderer(Protocol):
    """Surface of the map engine the harness drives.

    Events
        ``"load"`` fires once after the initial style is ready;
        ``"render"`` fires after every frame.

    Flag attributes
        ``repaint``, ``show_tile_boundaries``, ``show_overdraw_inspector``,
        ``show_padding``, ``show_collision_boxes``.
    """

    source_caches: Mapping[str, SourceCache]

    def on(self, event: str, listener: Callable[..., Any]) -> None: ...

    def once(self, event: str, listener: Callable[..., Any]) -> None: ...

    def off(self, event: str, listener: Callable[..., Any]) -> None: ...

    def loaded(self) -> bool: ...

    def render(self) -> None:
        """Draw one frame synchronously."""
        ...

    def add_image(self, image_id: str, image: RGBAImage, options: Mapping[str, Any]) -> None: ...

    def add_layer(self, layer: Any, before: str | None = None) -> None: ...

    def get_source(self, source_id: str) -> Source | None: ...

    def set_style(self, style: Any, options: Mapping[str, Any]) -> None: ...

    def query_rendered_features(
        self, geometry: Any, options: Mapping[str, Any],
    ) -> Sequence[Any]: ...

    def viewport(self) -> tuple[int, int, int, int]:
        """Return the GL viewport ``(x, y, width, height)`` in device pixels."""
        ...

    def read_pixels(self, x: int, y: int, width: int, height: int) -> bytes:
        """Return RGBA bytes of the color buffer, bottom-left origin."""
        ...

    def remove(self) -> None: ...

    def destroy_context(self) -> None:
        """Release the GPU context; it is not reclaimed by garbage collection."""
        ...


# ---------------------------------------------------------------------------
# Fake canvas / document shim
# ---------------------------------------------------------------------------


@dataclass
class FakeCanvas:
    """Canvas element stand-in whose pixels are swapped by the harness."""

    id: str
    width: int
    height: int
    data: bytes

    @classmethod
    def from_image(cls, canvas_id: str, image: RGBAImage) -> FakeCanvas:
        return cls(
            id=canvas_id, width=image.width, height=image.height, data=image.data,
        )

    def update(self, image: RGBAImage) -> None:
        """Replace the backing pixels.  Size stays as created."""
        self.data = image.data


class CanvasDocument:
    """Minimal document: canvas elements registered by id."""

    def __init__(self) -> None:
        self._elements: dict[str, FakeCanvas] = {}

    def append(self, canvas: FakeCanvas) -> None:
        if canvas.id in self._elements:
            raise ValueError(f"element id {canvas.id!r} already in document")
        self._elements[canvas.id] = canvas

    def get_element_by_id(self, element_id: str) -> FakeCanvas | None:
        return self._elements.get(element_id)

    def remove(self, element_id: str) -> None:
        """Detach an element; missing ids are ignored."""
        self._elements.pop(element_id, None)

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._elements

    def __len__(self) -> int:
        return len(self._elements)


# ---------------------------------------------------------------------------
# Construction record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RendererConfig:
    """Everything a renderer factory needs to build an off-screen map.

    ``width``/``height`` size the container in CSS pixels; the drawing
    buffer is that times ``device_pixel_ratio``.
    """

    style: Any
    width: int
    height: int
    device_pixel_ratio: float = 1.0
    classes: tuple[str, ...] | None = None
    interactive: bool = False
    attribution_control: bool = False
    preserve_drawing_buffer: bool = True
    axonometric: bool = False
    skew: tuple[float, float] = (0.0, 0.0)
    fade_duration: float = 0.0
    local_ideograph_font_family: str | bool = False
    cross_source_collisions: bool = True
    require_access_token: bool = False
    time_source: Callable[[], float] | None = None
    document: CanvasDocument = field(default_factory=CanvasDocument)


RendererFactory = Callable[[RendererConfig], Renderer]


def load_renderer_factory(target: str) -> RendererFactory:
    """Resolve ``"package.module:attr"`` to a renderer factory.

    Raises
    ------
    ValueError
        If *target* is not in ``module:attr`` form.
    ImportError / AttributeError
        If the module or attribute doesn't exist.
    TypeError
        If the attribute isn't callable.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(
            f"renderer factory must look like 'package.module:attr', got {target!r}"
        )
    module = importlib.import_module(module_name)
    factory = module
    for part in attr.split("."):
        factory = getattr(factory, part)
    if not callable(factory):
        raise TypeError(f"renderer factory {target!r} is not callable")
    logger.debug("Resolved renderer factory %s", target)
    return factory
