"""Run-level style start/stop/status control for a collection of scripted services."""

__version__ = "0.3.0"
