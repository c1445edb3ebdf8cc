"""Cross-cutting managers (logging)."""
