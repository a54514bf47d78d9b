"""Free-text normalisation helpers."""
