"""Registry of named custom layer implementations.

``["addCustomLayer", "<name>", before]`` looks ``<name>`` up here and
instantiates it with no arguments.  GPU-side implementations live with
the renderer bindings; they register themselves at import time::

    @register_custom_layer("tent-3d")
    class Tent3D:
        id = "tent-3d"
        type = "custom"
        def on_add(self, renderer, gl): ...
        def render(self, gl, matrix): ...
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping, MutableMapping

from render_harness.errors import OperationError

logger = logging.getLogger(__name__)

LayerFactory = Callable[[], Any]


class CustomLayerRegistry(Mapping[str, LayerFactory]):
    """Name -> zero-argument factory mapping."""

    def __init__(self, layers: Mapping[str, LayerFactory] | None = None) -> None:
        self._layers: MutableMapping[str, LayerFactory] = dict(layers or {})

    def register(self, name: str, factory: LayerFactory) -> None:
        if name in self._layers:
            raise ValueError(f"custom layer {name!r} already registered")
        self._layers[name] = factory
        logger.debug("Registered custom layer %r", name)

    def create(self, name: str) -> Any:
        """Instantiate the layer registered as *name*.

        Raises
        ------
        OperationError
            If *name* is unknown.
        """
        try:
            factory = self._layers[name]
        except KeyError:
            raise OperationError(
                f"unknown custom layer {name!r}. Available: {sorted(self._layers)}"
            ) from None
        return factory()

    def __getitem__(self, name: str) -> LayerFactory:
        return self._layers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._layers)

    def __len__(self) -> int:
        return len(self._layers)


default_registry = CustomLayerRegistry()


def register_custom_layer(name: str) -> Callable[[LayerFactory], LayerFactory]:
    """Class decorator adding an implementation to ``default_registry``."""
    def decorator(factory: LayerFactory) -> LayerFactory:
        default_registry.register(name, factory)
        return factory

    return decorator
