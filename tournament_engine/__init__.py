"""Tournament scheduling and bracket-derivation engine."""

__version__ = "0.1.0"
