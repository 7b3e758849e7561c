"""FastAPI dependencies for API routers."""

from fastapi import Request

from devbytes.application import DevBytesApplication


def get_application(request: Request) -> DevBytesApplication:
    """Dependency returning the application created in the lifespan handler."""
    return request.app.state.devbytes
