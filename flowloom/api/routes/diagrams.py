"""Flow diagram API routes — generation and stored artifact retrieval.

  POST /flow/diagrams                              → generate sequence + flow diagrams
  GET  /flow/diagrams/{project_name}               → list stored diagram files
  GET  /flow/diagram/{project_name}/{file_name}    → serve a stored file
  GET  /flow/diagram/{project_name}/{file_name}/content → stored source text
  GET  /flow/png/{project_name}/{file_name}        → serve a rendered PNG
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from ..deps import get_diagram_service
from ..schemas.diagrams import (
    DiagramContentResponse,
    DiagramGenerateRequest,
    DiagramGenerateResponse,
    DiagramLinkInfo,
    DiagramListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flow", tags=["diagrams"])

_CONTENT_TYPES = {
    ".png": "image/png",
    ".svg": "image/svg+xml",
    ".puml": "text/plain",
}


@router.post("/diagrams", response_model=DiagramGenerateResponse)
async def generate_diagrams(
    data: DiagramGenerateRequest,
    diagram_service=Depends(get_diagram_service),
):
    """Generate sequence and flow diagrams for an analysis.

    Always succeeds: diagrams that could not be rendered are left out of
    ``links`` and explained in ``notice``.
    """
    # Rendering shells out to Java or calls the PlantUML server
    bundle = await asyncio.to_thread(
        diagram_service.generate_bundle,
        data.project_name,
        data.class_name,
        data.method_name,
        data.analysis,
    )
    return DiagramGenerateResponse(
        links=[DiagramLinkInfo(label=link.label, path=link.path) for link in bundle.links],
        notice=bundle.notice,
        markdown=diagram_service.format_links(bundle),
    )


@router.get("/diagrams/{project_name}", response_model=DiagramListResponse)
async def list_diagrams(
    project_name: str,
    diagram_service=Depends(get_diagram_service),
):
    """List stored diagram sources and images for a project."""
    logger.info("Listing diagrams for project: %s", project_name)
    try:
        files = diagram_service.list_diagrams(project_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DiagramListResponse(success=True, data=files)


@router.get("/diagram/{project_name}/{file_name}/content", response_model=DiagramContentResponse)
async def get_diagram_content(
    project_name: str,
    file_name: str,
    diagram_service=Depends(get_diagram_service),
):
    """Return the text of a stored diagram source."""
    try:
        content = diagram_service.read_diagram_source(project_name, file_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError:
        logger.warning("Diagram file not found: %s/%s", project_name, file_name)
        raise HTTPException(status_code=404, detail=f"Diagram file not found: {file_name}")
    return DiagramContentResponse(success=True, data=content)


@router.get("/diagram/{project_name}/{file_name}")
async def get_diagram_file(
    project_name: str,
    file_name: str,
    diagram_service=Depends(get_diagram_service),
):
    """Serve a stored diagram file inline."""
    logger.info("Serving diagram file: %s for project: %s", file_name, project_name)
    try:
        path = diagram_service.resolve_artifact_path(project_name, file_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not path.is_file():
        logger.warning("Diagram file not found: %s", path)
        raise HTTPException(status_code=404, detail=f"Diagram file not found: {file_name}")

    return FileResponse(
        path,
        media_type=_CONTENT_TYPES.get(path.suffix, "application/octet-stream"),
        headers={"Content-Disposition": f'inline; filename="{path.name}"'},
    )


@router.get("/png/{project_name}/{file_name}")
async def get_png_diagram(
    project_name: str,
    file_name: str,
    diagram_service=Depends(get_diagram_service),
):
    """Serve a rendered PNG; ``.png`` is appended when missing."""
    png_name = file_name if file_name.endswith(".png") else f"{file_name}.png"
    try:
        path = diagram_service.resolve_artifact_path(project_name, png_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not path.is_file():
        logger.warning("PNG diagram file not found: %s", path)
        raise HTTPException(status_code=404, detail=f"Diagram file not found: {png_name}")

    return FileResponse(
        path,
        media_type="image/png",
        headers={
            "Content-Disposition": f'inline; filename="{png_name}"',
            "Cache-Control": "public, max-age=3600",
        },
    )
