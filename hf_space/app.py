"""Entry point for the hosted demo deployment.

Re-exports the FastAPI application so the Space runtime can discover and serve
the simulation API without knowing the package layout.
"""

from metabolab.main import app

__all__ = ["app"]
