"""FastAPI application factory for FlowLoom.

Creates and configures the FastAPI app with CORS and the diagram routes
registered.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)


def create_app(diagram_service) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        diagram_service: FlowDiagramService instance

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="FlowLoom API",
        description="Sequence and flow diagrams from code flow analysis",
        version="0.1.0",
    )

    # CORS for the frontend dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:4200",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.diagram_service = diagram_service

    from .routes.diagrams import router as diagrams_router

    app.include_router(diagrams_router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "service": "flowloom"}

    logger.info("FastAPI app created with all routes registered")
    return app
