"""Tests for the virtual clock."""

from __future__ import annotations

import pytest

from render_harness.harness.clock import VirtualClock


def test_starts_at_zero() -> None:
    assert VirtualClock().now() == 0.0


def test_custom_start() -> None:
    assert VirtualClock(start_ms=1000.0).now() == 1000.0


def test_advance_accumulates() -> None:
    clock = VirtualClock()
    assert clock.advance(250) == 250
    assert clock.advance(100) == 350
    assert clock.now() == 350


def test_advance_zero_is_allowed() -> None:
    clock = VirtualClock(start_ms=5.0)
    assert clock.advance(0) == 5.0


def test_cannot_go_backwards() -> None:
    clock = VirtualClock(start_ms=10.0)
    with pytest.raises(ValueError, match="backwards"):
        clock.advance(-1)
    assert clock.now() == 10.0


def test_clocks_are_independent() -> None:
    a, b = VirtualClock(), VirtualClock()
    a.advance(500)
    assert b.now() == 0.0


def test_now_is_usable_as_time_source() -> None:
    clock = VirtualClock()
    source = clock.now
    clock.advance(42)
    assert source() == 42


def test_repr() -> None:
    assert repr(VirtualClock(7.5)) == "VirtualClock(now=7.5)"
