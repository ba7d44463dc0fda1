"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Atomic I/O, YAML/JSON loading and PNG decoding (fs)
    - Unified logging (logging_config)

No module in utils/ may import from render_harness.

Convenience imports:
    from src.utils import fs
    from src.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import logging_config

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    'fs',
    'logging_config',
    'setup_logging',
    'get_logger',
    'push_context',
]
