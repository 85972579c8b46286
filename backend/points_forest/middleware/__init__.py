"""HTTP middleware: rate limiting, metrics and error tracking."""
