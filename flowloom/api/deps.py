"""FastAPI dependencies for FlowLoom.

Provides shared services via FastAPI's Depends() injection system.
"""

import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


async def get_diagram_service(request: Request):
    """Get FlowDiagramService from app state."""
    svc = getattr(request.app.state, "diagram_service", None)
    if svc is None:
        logger.error("Diagram service requested before it was attached to app.state")
        raise HTTPException(status_code=503, detail="Diagram service not available")
    return svc
