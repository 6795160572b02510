import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from cranrepo.api.repo import router as repo_router
from cranrepo.core.dependencies import get_repo_root

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(repo_root: Optional[Path] = None) -> FastAPI:
    """
    Build the application serving a local CRAN-style repository.

    The repository tree is mounted at "/", so R clients can use
    ``install.packages(pkgs, repos = "http://host:8000")``.
    """
    app = FastAPI(
        title="Local CRAN-style Repository",
        version="0.1.0",
        description="Serves a CRAN-compatible package tree built with cranrepo.",
    )

    @app.get("/health")
    async def health() -> dict:
        """
        Lightweight health check endpoint.
        """
        return {"status": "ok"}

    app.include_router(repo_router, tags=["admin"])

    root = repo_root or get_repo_root()
    if repo_root is not None:
        app.dependency_overrides[get_repo_root] = lambda: root

    # Mounted last so the API routes take precedence.
    app.mount("/", StaticFiles(directory=str(root)), name="repository")
    logger.info(f"Serving repository from {root}")
    return app


if __name__ == "__main__":
    """
    Allow running `python -m cranrepo.main` to serve the repository
    with the Uvicorn development server.
    """
    import uvicorn

    uvicorn.run(
        "cranrepo.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
