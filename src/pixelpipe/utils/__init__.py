"""Utility modules for pixelpipe."""
