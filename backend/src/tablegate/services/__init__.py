"""Table operations and request context."""
