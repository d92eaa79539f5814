"""Real-time pitch-to-score following for acoustic instruments."""

__version__ = "0.1.0"
