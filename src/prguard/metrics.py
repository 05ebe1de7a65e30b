"""In-process counters for triage activity."""

from __future__ import annotations

COUNTERS = (
    "prs_analyzed_total",
    "issues_analyzed_total",
    "duplicates_found_total",
    "openai_calls_total",
    "errors_total",
    "openai_degraded_total",
    "reopens_total",
    "rate_limited_total",
    "daily_limited_total",
)


class Metrics:
    """Monotonic counters, one set per :class:`~prguard.PRGuard` instance."""

    PREFIX = "prguard_"

    def __init__(self) -> None:
        self._counters: dict[str, int] = dict.fromkeys(COUNTERS, 0)

    def inc(self, name: str, amount: int = 1) -> None:
        if name not in self._counters:
            raise KeyError(f"Unknown counter: {name!r}")
        self._counters[name] += amount

    def get(self, name: str) -> int:
        return self._counters[name]

    def reset(self) -> None:
        for name in self._counters:
            self._counters[name] = 0

    def to_prometheus(self) -> str:
        """Render every counter in the Prometheus text exposition format."""
        lines: list[str] = []
        for name, value in self._counters.items():
            metric = f"{self.PREFIX}{name}"
            lines.append(f"# HELP {metric} PRGuard counter for {name.replace('_', ' ')}")
            lines.append(f"# TYPE {metric} counter")
            lines.append(f"{metric} {value}")
        return "\n".join(lines) + "\n"
