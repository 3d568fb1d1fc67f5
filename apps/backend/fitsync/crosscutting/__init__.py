"""Cross-cutting concerns: config, logging, errors, rate limiting, middleware."""
