"""
Test operation module.

Defines every scripted render-test step as an immutable dataclass, plus
the parser from the fixture wire form ``[kind, *args]``.
"""

from render_harness.ops.operations import (
    AddCustomLayer,
    AddImage,
    MethodCall,
    Operation,
    PauseSource,
    SetStyle,
    Sleep,
    UpdateFakeCanvas,
    Wait,
    parse_operation,
    parse_operations,
)

__all__ = [
    "Operation",
    "Wait",
    "Sleep",
    "AddImage",
    "AddCustomLayer",
    "UpdateFakeCanvas",
    "SetStyle",
    "PauseSource",
    "MethodCall",
    "parse_operation",
    "parse_operations",
]
