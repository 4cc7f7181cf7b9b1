"""Run a templated command with rotating values and overlapping handoff."""

__version__ = "0.4.0"
