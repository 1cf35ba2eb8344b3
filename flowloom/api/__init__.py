"""
REST API module for FlowLoom.

Provides FastAPI endpoints for:
- Flow diagram generation from analysis text
- Serving stored diagram sources and images
"""
