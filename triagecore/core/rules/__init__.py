"""Clinical condition rules."""
