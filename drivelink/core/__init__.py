"""Core utilities: configuration, logging, errors, security."""
