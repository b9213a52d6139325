"""VWAP / OBV / CEI composite trade-trigger engine."""

__version__ = "0.1.0"
