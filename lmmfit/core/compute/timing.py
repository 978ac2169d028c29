"""
Execution timing utilities.

Wall-clock section timing for the reduction and per-response phases.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Accumulating section timer.

    Usage:
        timer = Timer()
        timer.start()

        with timer.section('reduction'):
            design = SummaryDesign.from_arrays(Y, X, Z, d)

        with timer.section('fisher_scoring'):
            result = estimator.solve(design, config)

        timer.stop()
        timer.result()
        # {'total_seconds': 0.05, 'reduction': 0.01, 'fisher_scoring': 0.04}
    """

    def __init__(self) -> None:
        self._sections: dict[str, float] = {}
        self._start_time: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        """Start the overall timer."""
        self._start_time = time.perf_counter()

    def stop(self) -> None:
        """Stop the overall timer."""
        if self._start_time is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._start_time

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """
        Time a named section.

        Args:
            name: Section identifier (used as key in result dict)

        Note:
            Sections can overlap with each other and with the total time.
            Repeated sections accumulate.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self._sections[name] = self._sections.get(name, 0.0) + elapsed

    def merge(self, timing: dict[str, float] | None) -> None:
        """Fold another timing dict's sections into this timer."""
        if not timing:
            return
        for name, seconds in timing.items():
            if name == 'total_seconds':
                continue
            self._sections[name] = self._sections.get(name, 0.0) + seconds

    def result(self) -> dict[str, float]:
        """
        Get timing results.

        Returns:
            Dictionary with 'total_seconds' and all section timings

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")

        result = {'total_seconds': self._total}
        result.update(self._sections)
        return result
