"""SKU sales CSV schema inference and normalization engine."""

__version__ = "0.1.0"
