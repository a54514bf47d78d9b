"""Body-map selection validation."""
