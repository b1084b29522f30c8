"""HTTP API for schedule editors."""
