"""Pydantic schemas for API request/response models."""

from .diagrams import (
    DiagramContentResponse,
    DiagramGenerateRequest,
    DiagramGenerateResponse,
    DiagramLinkInfo,
    DiagramListResponse,
)

__all__ = [
    'DiagramContentResponse',
    'DiagramGenerateRequest',
    'DiagramGenerateResponse',
    'DiagramLinkInfo',
    'DiagramListResponse',
]
