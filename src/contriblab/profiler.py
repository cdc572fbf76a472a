"""Metric profiler for development debugging.

Example:
    >>> from contriblab.profiler import profile
    >>> with profile():
    ...     scores = calculate_tc_batch(predictions, meta_model, returns)
    # Prints profiling summary on exit
"""

from __future__ import annotations

import functools
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Generator, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

_local = threading.local()


@dataclass
class ProfileRecord:
    """Single profiling record for one metric call."""

    operator: str
    duration: float  # seconds
    input_shape: tuple[int, ...] | None = None


@dataclass
class Profiler:
    """Collects profiling records during a profiling session."""

    records: list[ProfileRecord] = field(default_factory=list)

    def record(
        self,
        operator: str,
        duration: float,
        input_shape: tuple[int, ...] | None = None,
    ) -> None:
        """Record a metric call."""
        self.records.append(ProfileRecord(operator, duration, input_shape))

    @property
    def total_time(self) -> float:
        """Total time across all recorded calls."""
        return sum(r.duration for r in self.records)

    def summary(self) -> None:
        """Print profiling summary table to stdout."""
        if not self.records:
            print("No profiling records.")
            return

        agg: dict[str, dict] = defaultdict(lambda: {"calls": 0, "total": 0.0, "shape": None})
        for r in self.records:
            agg[r.operator]["calls"] += 1
            agg[r.operator]["total"] += r.duration
            if r.input_shape:
                agg[r.operator]["shape"] = r.input_shape

        total = self.total_time

        print("┌" + "─" * 34 + "┬" + "─" * 7 + "┬" + "─" * 10 + "┬" + "─" * 9 + "┬" + "─" * 13 + "┐")
        print(f"│ {'Metric':<32} │ {'Calls':>5} │ {'Total(s)':>8} │ {'%Total':>7} │ {'Input Shape':>11} │")
        print("├" + "─" * 34 + "┼" + "─" * 7 + "┼" + "─" * 10 + "┼" + "─" * 9 + "┼" + "─" * 13 + "┤")

        for op, data in sorted(agg.items(), key=lambda x: -x[1]["total"]):
            pct = (data["total"] / total * 100) if total > 0 else 0
            shape_str = "×".join(str(d) for d in data["shape"]) if data["shape"] else ""
            print(f"│ {op:<32} │ {data['calls']:>5} │ {data['total']:>8.3f} │ {pct:>6.1f}% │ {shape_str:>11} │")

        print("├" + "─" * 34 + "┼" + "─" * 7 + "┼" + "─" * 10 + "┼" + "─" * 9 + "┼" + "─" * 13 + "┤")
        print(f"│ {'TOTAL':<32} │ {len(self.records):>5} │ {total:>8.3f} │ {'100.0%':>7} │ {'':<11} │")
        print("└" + "─" * 34 + "┴" + "─" * 7 + "┴" + "─" * 10 + "┴" + "─" * 9 + "┴" + "─" * 13 + "┘")


def _get_profiler() -> Profiler | None:
    """Get the active profiler for this thread, if any."""
    return getattr(_local, "profiler", None)


def _input_shape(args: tuple) -> tuple[int, ...] | None:
    """Shape of the first positional argument, when it has one."""
    if not args:
        return None
    first = args[0]
    shape = getattr(first, "shape", None)
    if shape is not None:
        return tuple(int(d) for d in shape)
    if isinstance(first, (list, tuple)):
        return (len(first),)
    return None


def profiled(func: F) -> F:
    """Record call duration and input shape while a profiler is active.

    When no profiling session is active the wrapped function is called
    directly with no timing overhead.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        p = _get_profiler()
        if p is None:
            return func(*args, **kwargs)

        start = time.perf_counter()
        result = func(*args, **kwargs)
        p.record(func.__name__, time.perf_counter() - start, _input_shape(args))
        return result

    return wrapper  # type: ignore[return-value]


@contextmanager
def profile() -> Generator[Profiler, None, None]:
    """Context manager to enable metric profiling.

    Example:
        >>> with profile() as p:
        ...     tc = calculate_tc(predictions, meta_model, returns)
        # Prints summary on exit
    """
    p = Profiler()
    _local.profiler = p
    try:
        yield p
    finally:
        _local.profiler = None
        p.summary()
