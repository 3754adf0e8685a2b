"""Mufattish: tabular sync and eligibility engine for school inspection records."""

__version__ = "0.3.0"
