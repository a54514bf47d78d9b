"""Typed intake phases."""
