"""Entry point for running hybrid-router as a module: ``python -m hybrid_router``."""

from hybrid_router.cli import app

if __name__ == "__main__":
    app()
