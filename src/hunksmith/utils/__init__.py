"""Utility modules for hunksmith."""
