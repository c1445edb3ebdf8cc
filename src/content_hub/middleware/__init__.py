"""HTTP middleware: request body limit and request logging."""
