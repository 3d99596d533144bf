"""FastAPI routers and dependencies."""

from tfportal.api.deps import get_component_factory, get_synthesizer
from tfportal.api.generate import router as generate_router

__all__ = [
    "get_component_factory",
    "get_synthesizer",
    "generate_router",
]
