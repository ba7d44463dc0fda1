"""Test operations -- the script vocabulary a render test can run.

Every scripted step is an immutable, slotted dataclass.  Fixtures carry
operations in their wire shape, a flat list whose first element names
the kind::

    ["wait"]                               -> Wait()
    ["wait", 250]                          -> Wait(duration_ms=250)
    ["sleep", 100]                         -> Sleep(duration_ms=100)
    ["addImage", "marker", "image/marker.png", {"sdf": true}]
    ["addCustomLayer", "tent-3d", "roads"]
    ["updateFakeCanvas", "canvas", "image/frame1.png", "image/frame2.png"]
    ["setStyle", "local://styles/night.json"]
    ["pauseSource", "vector"]
    ["setZoom", 4]                         -> MethodCall("setZoom", (4,))

``parse_operation`` validates arity and argument types up front, so a
malformed fixture fails before the renderer is created rather than in
the middle of a run.

Fallback
--------
Any kind not listed above becomes a ``MethodCall``: the interpreter looks
the name up on the renderer and calls it with the remaining arguments,
or skips it when the renderer has no such callable.
"""

from __future__ import annotations

import math
from abc import ABC
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from render_harness.errors import OperationError

# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Operation(ABC):
    """Base class for all test operations."""

    kind = ""

    def to_wire(self) -> list[Any]:
        """Return the ``[kind, *args]`` form this operation was parsed from."""
        return [self.kind]


# ---------------------------------------------------------------------------
# Timing operations
# ---------------------------------------------------------------------------


def _check_duration(kind: str, duration_ms: float) -> None:
    if not math.isfinite(duration_ms) or duration_ms < 0:
        raise OperationError(
            f"{kind} duration must be a finite number >= 0, got {duration_ms}"
        )


@dataclass(frozen=True, slots=True)
class Wait(Operation):
    """Advance virtual time, or wait until the renderer is loaded.

    Parameters
    ----------
    duration_ms : float | None
        With a duration: advance the virtual clock by that many
        milliseconds and force one render pass.  Without: suspend until
        ``renderer.loaded()`` is true, re-checking after every render.
    """

    kind = "wait"

    duration_ms: float | None = None

    def __post_init__(self) -> None:
        if self.duration_ms is not None:
            _check_duration(self.kind, self.duration_ms)

    def to_wire(self) -> list[Any]:
        if self.duration_ms is None:
            return ["wait"]
        return ["wait", self.duration_ms]


@dataclass(frozen=True, slots=True)
class Sleep(Operation):
    """Wall-clock delay.

    Prefer ``Wait``, which renders until the map is loaded.  ``Sleep`` is
    for behaviour that sidesteps the loaded logic entirely.

    Parameters
    ----------
    duration_ms : float
        Real milliseconds to sleep.
    """

    kind = "sleep"

    duration_ms: float

    def __post_init__(self) -> None:
        _check_duration(self.kind, self.duration_ms)

    def to_wire(self) -> list[Any]:
        return ["sleep", self.duration_ms]


# ---------------------------------------------------------------------------
# Content operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AddImage(Operation):
    """Register a decoded image with the renderer.

    Parameters
    ----------
    image_id : str
        Name the style refers to (``icon-image`` etc.).
    path : str
        Image file, relative to the fixtures directory.
    options : dict
        Passed through to ``add_image`` (``pixelRatio``, ``sdf``, ...).
    """

    kind = "addImage"

    image_id: str
    path: str
    options: dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> list[Any]:
        wire: list[Any] = ["addImage", self.image_id, self.path]
        if self.options:
            wire.append(dict(self.options))
        return wire


@dataclass(frozen=True, slots=True)
class AddCustomLayer(Operation):
    """Insert a named custom layer implementation.

    Parameters
    ----------
    layer : str
        Key in the custom layer registry.
    before : str | None
        Existing layer id to insert before; ``None`` appends on top.
    """

    kind = "addCustomLayer"

    layer: str
    before: str | None = None

    def to_wire(self) -> list[Any]:
        if self.before is None:
            return ["addCustomLayer", self.layer]
        return ["addCustomLayer", self.layer, self.before]


@dataclass(frozen=True, slots=True)
class UpdateFakeCanvas(Operation):
    """Swap the fake canvas frames around a canvas-source pause.

    Only ``pre_pause_image`` is observably rendered: the source is paused
    between the two swaps.

    Parameters
    ----------
    source_id : str
        Canvas source in the style.
    pre_pause_image, post_pause_image : str
        Frame images, relative to the fixtures directory.
    """

    kind = "updateFakeCanvas"

    source_id: str
    pre_pause_image: str
    post_pause_image: str

    def to_wire(self) -> list[Any]:
        return [
            "updateFakeCanvas",
            self.source_id,
            self.pre_pause_image,
            self.post_pause_image,
        ]


@dataclass(frozen=True, slots=True)
class SetStyle(Operation):
    """Replace the whole style.

    Parameters
    ----------
    style : str | dict
        Style URL/path or an inline style document.
    """

    kind = "setStyle"

    style: Any

    def to_wire(self) -> list[Any]:
        return ["setStyle", self.style]


@dataclass(frozen=True, slots=True)
class PauseSource(Operation):
    """Pause tile loading for one source cache."""

    kind = "pauseSource"

    source_id: str

    def to_wire(self) -> list[Any]:
        return ["pauseSource", self.source_id]


# ---------------------------------------------------------------------------
# Generic fallback
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MethodCall(Operation):
    """Call ``renderer.<method>(*args)`` if it exists, otherwise nothing.

    Parameters
    ----------
    method : str
        Renderer member name, taken verbatim from the wire kind.
    args : tuple
        Positional arguments.
    """

    method: str
    args: tuple[Any, ...] = ()

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.method

    def to_wire(self) -> list[Any]:
        return [self.method, *self.args]


# ---------------------------------------------------------------------------
# Wire parsing
# ---------------------------------------------------------------------------


def _require_str(kind: str, name: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise OperationError(
            f"{kind}: {name} must be a non-empty string, got {value!r}"
        )
    return value


def _require_number(kind: str, name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise OperationError(f"{kind}: {name} must be a number, got {value!r}")
    return value


def _check_arity(kind: str, args: Sequence[Any], low: int, high: int) -> None:
    if not low <= len(args) <= high:
        expected = str(low) if low == high else f"{low}-{high}"
        raise OperationError(
            f"{kind} takes {expected} argument(s), got {len(args)}: {list(args)!r}"
        )


def parse_operation(raw: Sequence[Any]) -> Operation:
    """Build one ``Operation`` from its ``[kind, *args]`` wire form.

    Raises
    ------
    OperationError
        On an empty/non-list entry, wrong argument count, or wrong
        argument types for a known kind.
    """
    if isinstance(raw, Operation):
        return raw
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence) or not raw:
        raise OperationError(
            f"operation must be a non-empty list [kind, ...args], got {raw!r}"
        )

    kind, args = raw[0], list(raw[1:])
    kind = _require_str("operation", "kind", kind)

    if kind == "wait":
        _check_arity(kind, args, 0, 1)
        if not args or args[0] is None:
            return Wait()
        return Wait(duration_ms=_require_number(kind, "duration", args[0]))

    if kind == "sleep":
        _check_arity(kind, args, 1, 1)
        return Sleep(duration_ms=_require_number(kind, "duration", args[0]))

    if kind == "addImage":
        _check_arity(kind, args, 2, 3)
        options = args[2] if len(args) > 2 and args[2] is not None else {}
        if not isinstance(options, Mapping):
            raise OperationError(
                f"addImage: options must be a mapping, got {options!r}"
            )
        return AddImage(
            image_id=_require_str(kind, "image id", args[0]),
            path=_require_str(kind, "path", args[1]),
            options=dict(options),
        )

    if kind == "addCustomLayer":
        _check_arity(kind, args, 1, 2)
        before = args[1] if len(args) > 1 else None
        if before is not None:
            before = _require_str(kind, "before", before)
        return AddCustomLayer(
            layer=_require_str(kind, "layer", args[0]), before=before,
        )

    if kind == "updateFakeCanvas":
        _check_arity(kind, args, 3, 3)
        return UpdateFakeCanvas(
            source_id=_require_str(kind, "source id", args[0]),
            pre_pause_image=_require_str(kind, "pre-pause image", args[1]),
            post_pause_image=_require_str(kind, "post-pause image", args[2]),
        )

    if kind == "setStyle":
        _check_arity(kind, args, 1, 1)
        if not isinstance(args[0], (str, Mapping)):
            raise OperationError(
                f"setStyle: style must be a URL string or a mapping, got {args[0]!r}"
            )
        return SetStyle(style=args[0])

    if kind == "pauseSource":
        _check_arity(kind, args, 1, 1)
        return PauseSource(source_id=_require_str(kind, "source id", args[0]))

    return MethodCall(method=kind, args=tuple(args))


def parse_operations(raw: Sequence[Sequence[Any]] | None) -> tuple[Operation, ...]:
    """Parse a whole operation list; ``None`` means no operations."""
    if raw is None:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise OperationError(f"operations must be a list, got {raw!r}")

    ops = []
    for idx, entry in enumerate(raw):
        try:
            ops.append(parse_operation(entry))
        except OperationError as exc:
            raise OperationError(f"operations[{idx}]: {exc}") from exc
    return tuple(ops)
