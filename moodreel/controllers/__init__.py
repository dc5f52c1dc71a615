"""FastAPI routers acting as controllers in the MVC architecture."""

from . import analysis, generation, relay

__all__ = ["analysis", "generation", "relay"]
