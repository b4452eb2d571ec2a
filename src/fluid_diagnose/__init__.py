"""Fluid dataset diagnostics: collect, analyze and summarize dataset state."""

__version__ = "0.1.0"
