"""
Render Harness Package.

Off-screen test harness for a map rendering engine. A test case is a
style plus options; the harness creates a renderer, replays the scripted
operations against it under a virtual clock, captures the RGBA pixels
(flipped to top-left origin) and, optionally, a rendered-feature query.

Subpackages:
    harness: virtual clock, completion guard, pixel readback, operation
             interpreter, orchestrator
    ops: test operation vocabulary and wire parser
    configs: harness config (YAML) and per-test options
    scripts: command-line fixture runner
"""

__version__ = "0.4.0"

__all__ = ["harness", "ops", "configs", "scripts"]
