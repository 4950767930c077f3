"""FIFO capital gains and trading tax calculation for broker statements."""

__version__ = "0.1.0"
