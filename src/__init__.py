"""Shared support layer for the map render test harness.

Architecture layers (strict one-way dependency):
    render_harness/scripts/ -> render_harness/{harness,ops,configs}/ -> src/utils/

Key invariants:
    - Pixel buffers are tightly packed 8-bit RGBA
    - Captured images are top-left origin; raw renderer readback is bottom-left
    - YAML for harness config, JSON for fixture styles
"""

__version__ = "0.4.0"
