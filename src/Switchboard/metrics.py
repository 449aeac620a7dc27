"""In-process counters for gate and dispatch events."""

from __future__ import annotations

from collections import defaultdict

_counters: dict[str, int] = defaultdict(int)


def inc_counter(name: str, value: int = 1) -> None:
    _counters[name] += int(value)


def get_counter(name: str) -> int:
    return _counters.get(name, 0)


def get_counters() -> dict[str, int]:
    return dict(_counters)


def reset_counters() -> None:
    _counters.clear()
