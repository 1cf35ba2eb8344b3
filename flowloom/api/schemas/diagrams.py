"""Flow diagram request/response schemas."""

from typing import List, Optional
from pydantic import BaseModel, Field


class DiagramGenerateRequest(BaseModel):
    """Generate diagrams from a code flow analysis."""
    project_name: str = Field(..., description="Project folder for the artifacts", min_length=1)
    class_name: str = Field(..., description="Analysed class", min_length=1)
    method_name: Optional[str] = Field(None, description="Analysed method")
    analysis: str = Field("", description="Analysis text produced by the language model")


class DiagramLinkInfo(BaseModel):
    """One rendered diagram."""
    label: str = Field(..., description="Human-readable label")
    path: str = Field(..., description="Relative URL of the rendered image")


class DiagramGenerateResponse(BaseModel):
    """Generation result; links only cover diagrams that rendered."""
    links: List[DiagramLinkInfo] = Field(default_factory=list, description="Rendered diagrams")
    notice: Optional[str] = Field(None, description="Explanation when some diagrams failed")
    markdown: str = Field("", description="Link block ready to append to the analysis")


class DiagramContentResponse(BaseModel):
    """Stored diagram source."""
    success: bool = Field(..., description="Whether request succeeded")
    data: Optional[str] = Field(None, description="Diagram source text")
    error: Optional[str] = Field(None, description="Error message if failed")


class DiagramListResponse(BaseModel):
    """Stored diagram files of a project."""
    success: bool = Field(..., description="Whether request succeeded")
    data: List[str] = Field(default_factory=list, description="File names")
    error: Optional[str] = Field(None, description="Error message if failed")
