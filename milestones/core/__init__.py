"""Core infrastructure: database, events, logging."""
