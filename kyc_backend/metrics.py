"""Operational counters for the verification service."""
from __future__ import annotations

import functools
import time
from typing import Dict


class Metrics:
    def __init__(self):
        self.counters = {
            "records_created": 0,
            "records_approved": 0,
            "records_rejected": 0,
            "records_reopened": 0,
            "records_deleted": 0,
            "alerts_raised": 0,
            "alerts_resolved": 0,
            "invalid_transitions": 0,
            "extraction_requests": 0,
        }
        self.durations = {
            "extraction_latency_ms": [],
        }

    def incr(self, name: str, amount: int = 1):
        self.counters[name] = self.counters.get(name, 0) + amount

    def record_decision(self, action: str):
        key = "records_approved" if action == "approve" else "records_rejected"
        self.incr(key)

    def record_latency(self, ms: float):
        self.durations["extraction_latency_ms"].append(ms)

    def reset(self):
        self.__init__()

    def snapshot(self) -> Dict[str, object]:
        avg_latency = 0.0
        latencies = self.durations.get("extraction_latency_ms", [])
        if latencies:
            avg_latency = sum(latencies) / len(latencies)
        return {
            "counters": dict(self.counters),
            "average_extraction_latency_ms": round(avg_latency, 2),
        }


metrics = Metrics()


def timed(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        start = time.time()
        try:
            return fn(*args, **kwargs)
        finally:
            metrics.record_latency((time.time() - start) * 1000)

    return wrapper
