"""Collect fan-dubbed anime from the Shikimori catalog, enrich them from Kodik and
publish them to a destination store."""

__version__ = "0.1.0"
