"""Bundled data files (static facts table)."""
