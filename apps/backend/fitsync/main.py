"""
Name: Backend ASGI Entrypoint (fitsync.main)

Responsibilities:
  - Re-export the FastAPI app for ASGI servers and tooling
  - Keep the import path stable: uvicorn fitsync.main:app

Notes/Constraints:
  - No configuration or IO here; importing only builds the app
"""

from fitsync.api.main import app

__all__ = ["app"]
