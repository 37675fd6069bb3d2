"""Request monitoring for StudyDesk.

Collects per-route request metrics from the HTTP middleware and renders
them in Prometheus text format for /metrics:
- request counts and average latency by method and route
- error counts by route and status code
- in-flight requests
"""

import re
from collections import defaultdict
from threading import Lock


# Numeric record ids in paths like /studyplan/42
_ID_SEGMENT = re.compile(r"/\d+(?=/|$)")


def normalize_path(path: str) -> str:
    """Collapse record ids to :id so each route is one metric series."""
    return _ID_SEGMENT.sub("/:id", path)


class MetricsCollector:
    """Thread-safe counters for HTTP requests."""

    def __init__(self, prefix: str = "studydesk"):
        self.prefix = prefix
        self.request_count: dict[tuple[str, str], int] = defaultdict(int)
        self.error_count: dict[tuple[str, str, int], int] = defaultdict(int)
        self.latency_sum: dict[tuple[str, str], float] = defaultdict(float)
        self.active_requests: int = 0
        self._lock = Lock()

    def record_request(self, method: str, path: str, status: int, duration: float):
        """Record a completed HTTP request."""
        with self._lock:
            key = (method, path)
            self.request_count[key] += 1
            self.latency_sum[key] += duration
            if status >= 400:
                self.error_count[(method, path, status)] += 1

    def increment_active(self):
        with self._lock:
            self.active_requests += 1

    def decrement_active(self):
        with self._lock:
            self.active_requests -= 1

    def reset(self):
        with self._lock:
            self.request_count.clear()
            self.error_count.clear()
            self.latency_sum.clear()
            self.active_requests = 0

    def to_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        p = self.prefix
        lines = [
            f"# HELP {p}_requests_total Total HTTP requests",
            f"# TYPE {p}_requests_total counter",
        ]
        with self._lock:
            for (method, path), count in sorted(self.request_count.items()):
                lines.append(f'{p}_requests_total{{method="{method}",path="{path}"}} {count}')

            lines.append("")
            lines.append(f"# HELP {p}_request_duration_avg_seconds Average request latency")
            lines.append(f"# TYPE {p}_request_duration_avg_seconds gauge")
            for (method, path), total in sorted(self.latency_sum.items()):
                avg = total / max(self.request_count[(method, path)], 1)
                lines.append(
                    f'{p}_request_duration_avg_seconds{{method="{method}",path="{path}"}} {avg:.4f}'
                )

            lines.append("")
            lines.append(f"# HELP {p}_errors_total Total HTTP errors (4xx/5xx)")
            lines.append(f"# TYPE {p}_errors_total counter")
            for (method, path, status), count in sorted(self.error_count.items()):
                lines.append(
                    f'{p}_errors_total{{method="{method}",path="{path}",status="{status}"}} {count}'
                )

            lines.append("")
            lines.append(f"# HELP {p}_active_requests Current active requests")
            lines.append(f"# TYPE {p}_active_requests gauge")
            lines.append(f"{p}_active_requests {self.active_requests}")

        return "\n".join(lines) + "\n"


# Global metrics instance
metrics = MetricsCollector()
