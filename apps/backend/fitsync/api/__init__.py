"""HTTP application wiring (FastAPI app, exception handlers)."""
