#!/usr/bin/env python3
"""
Run Fixture Script.

Render one fixture directory and write what the renderer produced next
to it, for inspection or for a separate comparison step.

A fixture directory holds ``style.json`` whose ``metadata.test`` block
is the test options record.  Outputs:

    actual.png     captured pixels (top-left origin RGBA)
    actual.json    queried features, only when the options ask for a query

Usage:
    python -m render_harness.scripts.run_fixture fixtures/render/line-width/default
    python -m render_harness.scripts.run_fixture FIXTURE --renderer mybinding.gl:create_map
    python -m render_harness.scripts.run_fixture FIXTURE --config ci/harness.yaml -v

Exit codes:
    0: Rendered and written
    1: Config, options, operation or timeout error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from render_harness.configs.loader import load_config
from render_harness.configs.options import TestOptions
from render_harness.errors import HarnessError
from render_harness.harness.renderer import load_renderer_factory
from render_harness.harness.suite import RenderHarness
from src.utils import fs
from src.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render one fixture and write actual.png",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "fixture",
        type=Path,
        help="Fixture directory containing style.json",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Harness configuration file path",
    )
    parser.add_argument(
        "--renderer",
        "-r",
        type=str,
        help="Renderer factory as package.module:attr (overrides config)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Output directory (default: the fixture directory)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Override the run timeout in milliseconds",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every operation",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, HarnessError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    log_kwargs = config.logging.as_kwargs()
    if args.verbose:
        log_kwargs["level"] = "DEBUG"
    setup_logging(**log_kwargs, context={"app": "run_fixture"})

    fixture_dir: Path = args.fixture
    name = fixture_dir.name
    try:
        style = fs.load_json(fixture_dir / "style.json")
        options = TestOptions.from_style(style)
    except (FileNotFoundError, ValueError, HarnessError) as e:
        logger.error("Cannot read fixture %s: %s", fixture_dir, e)
        return 1

    if args.timeout:
        options = options.model_copy(update={"timeout": args.timeout})

    try:
        factory = load_renderer_factory(args.renderer) if args.renderer else None
        harness = RenderHarness(factory, config=config)
        result = harness.render_sync(style, options, name=name)
    except Exception as e:  # noqa: BLE001
        logger.error("Render test %s failed: %s", name, e)
        return 1

    out_dir = args.output or fixture_dir
    fs.atomic_save_image(result.pixels.to_array(), out_dir / "actual.png")
    logger.info("Wrote %s", out_dir / "actual.png")

    if options.query_geometry is not None:
        fs.atomic_json_dump(result.features, out_dir / "actual.json")
        logger.info("Wrote %s (%d features)", out_dir / "actual.json", len(result.features))

    return 0


if __name__ == "__main__":
    sys.exit(main())
