"""
Request dependencies
"""

from fastapi import Request

from pixelgrid.sync_engine import SyncEngine


def get_engine(request: Request) -> SyncEngine:
    """
    Return the SyncEngine created by the application lifespan.

    Usage:
        @router.get("/example")
        def example(engine: SyncEngine = Depends(get_engine)):
            ...
    """
    return request.app.state.engine
