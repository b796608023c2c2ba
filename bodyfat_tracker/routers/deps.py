"""
Shared FastAPI dependencies.

The RecordStore is created once in the application lifespan (see main.py)
and kept on `app.state`, so every request observes the same collections.
"""

from fastapi import Request

from bodyfat_tracker.services.record_store import RecordStore


def get_store(request: Request) -> RecordStore:
    """
    FastAPI dependency that provides the application's RecordStore.

    Usage in a route:
        @router.get("/example")
        async def example(store: RecordStore = Depends(get_store)):
            ...
    """
    return request.app.state.store
