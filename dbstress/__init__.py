"""Key/value database stress workload and deterministic pseudo-random data generators."""

__version__ = "0.1.0"