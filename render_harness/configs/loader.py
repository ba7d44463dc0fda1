"""Configuration loader for the render harness.

Loads and validates ``harness.yaml`` into typed, frozen dataclasses.
Per-test values (size, operations, query) come from fixture options, see
``render_harness.configs.options``; this file holds what is constant
across a suite: where fixtures live, the default run timeout, which
renderer binding to use, and logging.

Times are stored in **milliseconds** throughout, matching fixture
operation arguments.

Usage::

    from render_harness.configs.loader import load_config
    cfg = load_config()                        # default path
    cfg = load_config("/ci/harness.yaml")      # explicit path
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from render_harness.errors import ConfigError
from src.utils.fs import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "harness.yaml"


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    """Defaults applied to every harness run."""

    timeout_ms: float = 20000.0
    pixel_ratio: float = 1.0


@dataclass(frozen=True)
class RendererBindingConfig:
    """Which renderer factory to construct maps with.

    ``factory`` is ``"package.module:attr"``; ``None`` means the caller
    must pass a factory explicitly.
    """

    factory: str | None = None


@dataclass(frozen=True)
class LoggingConfig:
    """Arguments forwarded to ``src.utils.logging_config.setup_logging``."""

    level: str = "INFO"
    file: str | None = None
    json: bool = False
    color: bool = True
    quiet_libs: tuple[str, ...] = ("PIL",)

    def as_kwargs(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "file": self.file,
            "json": self.json,
            "color": self.color,
            "quiet_libs": list(self.quiet_libs),
        }


@dataclass(frozen=True)
class HarnessConfig:
    """Complete harness configuration loaded from ``harness.yaml``.

    Relative ``fixtures_dir`` values are resolved against the directory
    of the YAML file they came from.
    """

    fixtures_dir: Path
    run: RunConfig = field(default_factory=RunConfig)
    renderer: RendererBindingConfig = field(default_factory=RendererBindingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Internal parsing helpers
# ---------------------------------------------------------------------------


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(raw).__name__}")
    return raw


def _parse_run(data: dict[str, Any]) -> RunConfig:
    """Parse the ``run`` section."""
    return RunConfig(
        timeout_ms=float(data.get("timeout_ms", 20000.0)),
        pixel_ratio=float(data.get("pixel_ratio", 1.0)),
    )


def _parse_renderer(data: dict[str, Any]) -> RendererBindingConfig:
    """Parse the ``renderer`` section."""
    factory = data.get("factory")
    return RendererBindingConfig(
        factory=str(factory) if factory else None,
    )


def _parse_logging(data: dict[str, Any]) -> LoggingConfig:
    """Parse the ``logging`` section."""
    quiet = data.get("quiet_libs", ["PIL"]) or []
    if not isinstance(quiet, (list, tuple)):
        raise ConfigError(f"logging.quiet_libs must be a list, got {quiet!r}")
    file = data.get("file")
    return LoggingConfig(
        level=str(data.get("level", "INFO")).upper(),
        file=str(file) if file else None,
        json=bool(data.get("json", False)),
        color=bool(data.get("color", True)),
        quiet_libs=tuple(str(lib) for lib in quiet),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _validate_config(cfg: HarnessConfig) -> None:
    """Validate field ranges.

    Raises
    ------
    ConfigError
        On any invalid value.
    """
    if cfg.run.timeout_ms <= 0:
        raise ConfigError(f"run.timeout_ms must be > 0, got {cfg.run.timeout_ms}")
    if cfg.run.pixel_ratio <= 0:
        raise ConfigError(f"run.pixel_ratio must be > 0, got {cfg.run.pixel_ratio}")

    if cfg.renderer.factory is not None and ":" not in cfg.renderer.factory:
        raise ConfigError(
            f"renderer.factory must look like 'package.module:attr', "
            f"got {cfg.renderer.factory!r}"
        )

    if cfg.logging.level not in _LEVELS:
        raise ConfigError(
            f"logging.level must be one of {_LEVELS}, got {cfg.logging.level!r}"
        )

    if not cfg.fixtures_dir.is_dir():
        logger.warning("Fixtures directory %s does not exist", cfg.fixtures_dir)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def config_from_dict(data: dict[str, Any], base_dir: Path) -> HarnessConfig:
    """Build and validate a ``HarnessConfig`` from an already-parsed mapping."""
    if not isinstance(data, dict):
        raise ConfigError(f"harness config must be a mapping, got {type(data).__name__}")

    try:
        fixtures = Path(data.get("fixtures_dir", "fixtures"))
        if not fixtures.is_absolute():
            fixtures = (base_dir / fixtures).resolve()

        config = HarnessConfig(
            fixtures_dir=fixtures,
            run=_parse_run(_section(data, "run")),
            renderer=_parse_renderer(_section(data, "renderer")),
            logging=_parse_logging(_section(data, "logging")),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid harness config: {exc}") from exc

    _validate_config(config)
    return config


def load_config(path: str | Path | None = None) -> HarnessConfig:
    """Load and validate harness configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to ``harness.yaml``.  ``None`` loads the default shipped
        alongside this module.

    Returns
    -------
    HarnessConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    ConfigError
        If any field fails validation.
    FileNotFoundError
        If *path* does not exist.
    """
    path = DEFAULT_CONFIG_PATH if path is None else Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", path)

    data = load_yaml(path)
    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")

    return config_from_dict(data, path.parent)
