"""Bundled data files for expirefs."""
