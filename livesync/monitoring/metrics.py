import time
from typing import Dict, Any, List
import numpy as np
from dataclasses import dataclass

@dataclass
class MetricSummary:
    count: int
    mean: float
    maximum: float
    p95: float

class MetricsTracker:
    def __init__(self):
        self.metrics: Dict[str, List[float]] = {
            'flush_latency': [],
            'start_time': [],
        }
        self.counters: Dict[str, int] = {}
        self.errors: List[Dict[str, Any]] = []

    def time(self) -> float:
        return time.monotonic()

    def record(self, name: str, value: Any = 1):
        """Record a timing sample, or bump a counter for non-numeric values"""
        if isinstance(value, (int, float)) and not isinstance(value, bool) and name in self.metrics:
            self.metrics[name].append(float(value))
        else:
            self.counters[name] = self.counters.get(name, 0) + 1

    def record_error(self, name: str, detail: str):
        """Record an error occurrence"""
        self.errors.append({'name': name, 'detail': detail, 'timestamp': time.time()})
        self.counters[name] = self.counters.get(name, 0) + 1

    def counter(self, name: str) -> int:
        return self.counters.get(name, 0)

    def summary(self, name: str) -> MetricSummary:
        """Summarize recorded samples for a timing metric"""
        samples = np.asarray(self.metrics.get(name, []), dtype=float)
        if samples.size == 0:
            return MetricSummary(count=0, mean=0.0, maximum=0.0, p95=0.0)

        return MetricSummary(
            count=int(samples.size),
            mean=float(samples.mean()),
            maximum=float(samples.max()),
            p95=float(np.percentile(samples, 95))
        )
