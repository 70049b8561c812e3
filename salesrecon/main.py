"""
FastAPI Production Application

Main entry point for the Sales Reconciliation API.
"""

from salesrecon.config import get_settings
from salesrecon.serving import create_app

settings = get_settings()
app = create_app()


def run() -> None:
    """Serve the API with a single worker; the engine state lives in-process."""
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
