"""Tests for the run_fixture command-line script."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image

from render_harness.scripts import run_fixture
from src.utils.logging_config import reset_logging


@pytest.fixture(autouse=True)
def _drop_log_handlers():
    yield
    reset_logging()


@pytest.fixture
def harness_yaml(tmp_path: Path) -> Path:
    path = tmp_path / "harness.yaml"
    path.write_text(
        f"fixtures_dir: {tmp_path}\n"
        "renderer:\n  factory: fake_renderer:create\n"
        "logging:\n  level: WARNING\n  color: false\n",
    )
    return path


def make_fixture(root: Path, test: dict) -> Path:
    fixture = root / "render" / "line-width" / "default"
    fixture.mkdir(parents=True)
    style = {"version": 8, "metadata": {"test": test}, "sources": {}, "layers": []}
    (fixture / "style.json").write_text(json.dumps(style))
    return fixture


class TestRunFixture:
    def test_writes_actual_png(self, tmp_path, harness_yaml) -> None:
        fixture = make_fixture(tmp_path, {"width": 6, "height": 4, "operations": [["wait"]]})

        code = run_fixture.main([str(fixture), "--config", str(harness_yaml)])

        assert code == 0
        with Image.open(fixture / "actual.png") as img:
            assert img.size == (6, 4)
            assert img.mode == "RGBA"
            # top row came from the last GL row
            assert img.getpixel((0, 0)) == (3, 3, 3, 3)
        assert not (fixture / "actual.json").exists()

    def test_query_writes_actual_json(self, tmp_path, harness_yaml) -> None:
        fixture = make_fixture(
            tmp_path, {"width": 2, "height": 2, "queryGeometry": [1, 1]},
        )

        assert run_fixture.main([str(fixture), "-c", str(harness_yaml)]) == 0

        assert json.loads((fixture / "actual.json").read_text()) == []

    def test_output_directory(self, tmp_path, harness_yaml) -> None:
        fixture = make_fixture(tmp_path, {"width": 2, "height": 3, "pixelRatio": 2})
        out = tmp_path / "out"

        assert run_fixture.main([str(fixture), "-c", str(harness_yaml), "-o", str(out)]) == 0

        with Image.open(out / "actual.png") as img:
            assert img.size == (4, 6)
        assert not (fixture / "actual.png").exists()

    def test_renderer_flag_overrides_config(self, tmp_path, harness_yaml) -> None:
        fixture = make_fixture(tmp_path, {"width": 2, "height": 2, "timeout": 5000})

        code = run_fixture.main([
            str(fixture), "-c", str(harness_yaml),
            "--renderer", "fake_renderer:create_stalled", "--timeout", "20",
        ])

        assert code == 1
        assert not (fixture / "actual.png").exists()

    def test_operation_failure_exit_code(self, tmp_path, harness_yaml) -> None:
        fixture = make_fixture(
            tmp_path, {"width": 2, "height": 2, "operations": [["pauseSource", "missing"]]},
        )

        assert run_fixture.main([str(fixture), "-c", str(harness_yaml)]) == 1

    def test_missing_style(self, tmp_path, harness_yaml) -> None:
        assert run_fixture.main([str(tmp_path / "nowhere"), "-c", str(harness_yaml)]) == 1

    def test_style_without_test_block(self, tmp_path, harness_yaml) -> None:
        fixture = tmp_path / "plain"
        fixture.mkdir()
        (fixture / "style.json").write_text(json.dumps({"version": 8}))

        assert run_fixture.main([str(fixture), "-c", str(harness_yaml)]) == 1

    def test_missing_config(self, tmp_path, capsys) -> None:
        fixture = make_fixture(tmp_path, {"width": 2, "height": 2})

        assert run_fixture.main([str(fixture), "-c", str(tmp_path / "nope.yaml")]) == 1
        assert "Error loading config" in capsys.readouterr().err

    def test_no_renderer_configured(self, tmp_path) -> None:
        cfg = tmp_path / "bare.yaml"
        cfg.write_text(f"fixtures_dir: {tmp_path}\nlogging:\n  level: WARNING\n")
        fixture = make_fixture(tmp_path, {"width": 2, "height": 2})

        assert run_fixture.main([str(fixture), "-c", str(cfg)]) == 1
