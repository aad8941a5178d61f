"""
Routers Package
"""

from pixelgrid.routers.animations import router as animations_router

__all__ = [
    "animations_router",
]
