"""Tests for harness configuration loading and per-test options."""

from __future__ import annotations

from pathlib import Path

import pytest

from render_harness.configs.loader import (
    DEFAULT_CONFIG_PATH,
    HarnessConfig,
    config_from_dict,
    load_config,
)
from render_harness.configs.options import FakeCanvasOptions, TestOptions
from render_harness.errors import ConfigError
from render_harness.ops.operations import MethodCall, Wait


# ---------------------------------------------------------------------------
# harness.yaml
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_default_config_loads(self) -> None:
        cfg = load_config()
        assert isinstance(cfg, HarnessConfig)
        assert cfg.run.timeout_ms == 20000
        assert cfg.run.pixel_ratio == 1.0
        assert cfg.renderer.factory is None
        assert cfg.logging.level == "INFO"
        assert cfg.logging.quiet_libs == ("PIL",)

    def test_default_fixtures_dir_is_resolved(self) -> None:
        cfg = load_config()
        assert cfg.fixtures_dir.is_absolute()
        assert cfg.fixtures_dir == (DEFAULT_CONFIG_PATH.parent / "../../fixtures").resolve()

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "harness.yaml"
        path.write_text(
            "fixtures_dir: fx\n"
            "run:\n  timeout_ms: 5000\n"
            "renderer:\n  factory: mybinding.gl:create_map\n"
            "logging:\n  level: debug\n  json: true\n",
        )

        cfg = load_config(path)

        assert cfg.fixtures_dir == (tmp_path / "fx").resolve()
        assert cfg.run.timeout_ms == 5000
        assert cfg.renderer.factory == "mybinding.gl:create_map"
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.json is True

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="Empty"):
            load_config(path)

    def test_logging_kwargs(self) -> None:
        kwargs = load_config().logging.as_kwargs()
        assert kwargs == {
            "level": "INFO",
            "file": None,
            "json": False,
            "color": True,
            "quiet_libs": ["PIL"],
        }


class TestConfigValidation:
    @pytest.mark.parametrize(
        "data, match",
        [
            ({"run": {"timeout_ms": 0}}, "timeout_ms"),
            ({"run": {"pixel_ratio": -1}}, "pixel_ratio"),
            ({"run": {"timeout_ms": "soon"}}, "Invalid harness config"),
            ({"renderer": {"factory": "no_colon"}}, "package.module:attr"),
            ({"logging": {"level": "LOUD"}}, "logging.level"),
            ({"logging": {"quiet_libs": "PIL"}}, "quiet_libs"),
            ({"run": [1, 2]}, "'run' must be a mapping"),
        ],
    )
    def test_rejects(self, tmp_path: Path, data, match) -> None:
        with pytest.raises(ConfigError, match=match):
            config_from_dict(data, tmp_path)

    def test_rejects_non_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            config_from_dict(["fixtures"], tmp_path)  # type: ignore[arg-type]

    def test_missing_fixtures_dir_only_warns(self, tmp_path: Path, caplog) -> None:
        with caplog.at_level("WARNING"):
            cfg = config_from_dict({"fixtures_dir": "absent"}, tmp_path)
        assert cfg.fixtures_dir == (tmp_path / "absent").resolve()
        assert "does not exist" in caplog.text

    def test_absolute_fixtures_dir_kept(self, tmp_path: Path) -> None:
        cfg = config_from_dict({"fixtures_dir": str(tmp_path)}, Path("/elsewhere"))
        assert cfg.fixtures_dir == tmp_path

    def test_config_is_frozen(self, tmp_path: Path) -> None:
        cfg = config_from_dict({}, tmp_path)
        with pytest.raises(AttributeError):
            cfg.fixtures_dir = tmp_path  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Test options
# ---------------------------------------------------------------------------


class TestOptionsParsing:
    def test_minimal(self) -> None:
        opts = TestOptions.parse({"width": 64, "height": 32})
        assert (opts.width, opts.height) == (64, 32)
        assert opts.pixel_ratio == 1.0
        assert opts.operations == ()
        assert opts.timeout is None
        assert opts.cross_source_collisions is True
        assert opts.query_geometry is None
        assert opts.add_fake_canvas is None

    def test_camel_case_keys(self) -> None:
        opts = TestOptions.parse({
            "width": 10,
            "height": 10,
            "pixelRatio": 2,
            "fadeDuration": 100,
            "showOverdrawInspector": True,
            "showPadding": True,
            "collisionDebug": True,
            "crossSourceCollisions": False,
            "queryGeometry": [1, 2],
            "queryOptions": {"layers": ["a"]},
            "addFakeCanvas": {"id": "fake-canvas", "image": "image/a.png"},
        })
        assert opts.pixel_ratio == 2
        assert opts.fade_duration == 100
        assert opts.show_overdraw_inspector and opts.show_padding and opts.collision_debug
        assert opts.cross_source_collisions is False
        assert opts.query_geometry == [1, 2]
        assert dict(opts.query_options) == {"layers": ["a"]}
        assert opts.add_fake_canvas == FakeCanvasOptions(id="fake-canvas", image="image/a.png")

    def test_snake_case_keys_accepted(self) -> None:
        opts = TestOptions.parse({"width": 1, "height": 1, "pixel_ratio": 3})
        assert opts.pixel_ratio == 3

    def test_operations_are_parsed(self) -> None:
        opts = TestOptions.parse({
            "width": 1, "height": 1, "operations": [["wait", 100], ["setZoom", 2]],
        })
        assert opts.operations == (Wait(100), MethodCall("setZoom", (2,)))

    def test_unknown_keys_ignored(self) -> None:
        opts = TestOptions.parse({"width": 1, "height": 1, "allowed": 0.0005, "diff": 0})
        assert not hasattr(opts, "allowed")

    def test_zero_timeout_means_default(self) -> None:
        opts = TestOptions.parse({"width": 1, "height": 1, "timeout": 0})
        assert opts.timeout is None
        assert opts.effective_timeout_ms(20000) == 20000

    def test_explicit_timeout(self) -> None:
        opts = TestOptions.parse({"width": 1, "height": 1, "timeout": 40000})
        assert opts.effective_timeout_ms(20000) == 40000

    def test_pixel_ratio_default_only_when_unset(self) -> None:
        unset = TestOptions.parse({"width": 1, "height": 1})
        explicit = TestOptions.parse({"width": 1, "height": 1, "pixelRatio": 1})
        assert unset.effective_pixel_ratio(2.0) == 2.0
        assert explicit.effective_pixel_ratio(2.0) == 1

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_font_family_disables(self, value) -> None:
        opts = TestOptions.parse({"width": 1, "height": 1, "localIdeographFontFamily": value})
        assert opts.local_ideograph_font_family is False

    def test_instance_passes_through(self) -> None:
        opts = TestOptions(width=1, height=1)
        assert TestOptions.parse(opts) is opts

    def test_frozen(self) -> None:
        opts = TestOptions(width=1, height=1)
        with pytest.raises(Exception):
            opts.width = 2  # type: ignore[misc]


class TestOptionsValidation:
    @pytest.mark.parametrize(
        "raw, match",
        [
            ({"height": 1}, "width"),
            ({"width": 0, "height": 1}, "width"),
            ({"width": 1, "height": 1, "pixelRatio": 0}, "pixelRatio"),
            ({"width": 1, "height": 1, "timeout": -5}, "timeout"),
            ({"width": 1, "height": 1, "operations": [["wait", "x"]]}, "must be a number"),
            ({"width": 1, "height": 1, "addFakeCanvas": {"id": "c"}}, "image"),
        ],
    )
    def test_invalid(self, raw, match) -> None:
        with pytest.raises(ConfigError, match=match):
            TestOptions.parse(raw)

    def test_non_mapping(self) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            TestOptions.parse([1, 2])  # type: ignore[arg-type]


class TestFromStyle:
    def test_reads_metadata_test(self) -> None:
        style = {"version": 8, "metadata": {"test": {"width": 5, "height": 6}}}
        opts = TestOptions.from_style(style)
        assert (opts.width, opts.height) == (5, 6)

    @pytest.mark.parametrize("style", [{"version": 8}, {"metadata": {}}, {"metadata": None}])
    def test_missing_block(self, style) -> None:
        with pytest.raises(ConfigError, match="metadata.test"):
            TestOptions.from_style(style)
