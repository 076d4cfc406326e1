"""kv-bench: comparative benchmark harness for embedded key-value stores."""

__all__ = [
    "artifacts",
    "benchmarks",
    "candidates",
    "core",
    "shared",
]
