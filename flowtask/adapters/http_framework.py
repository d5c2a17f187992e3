"""
Adapter for HTTP framework (FastAPI).
Keeps FastAPI-specific imports in one place for the route and app modules.
"""
from typing import Callable, Any

from fastapi import FastAPI, APIRouter, HTTPException, Query, Body, Path, Request, Depends
from fastapi.responses import JSONResponse, Response


class FastAPIRouterAdapter:
    """Thin wrapper around an APIRouter."""

    def __init__(self, router: APIRouter):
        self._router = router

    def get(self, path: str, **kwargs) -> Callable:
        """Register a GET route."""
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs) -> Callable:
        """Register a POST route."""
        return self._router.post(path, **kwargs)

    @property
    def router(self) -> APIRouter:
        """Get the underlying FastAPI router."""
        return self._router


class FastAPIAppAdapter:
    """Thin wrapper around a FastAPI application."""

    def __init__(self, app: FastAPI):
        self._app = app

    def include_router(self, router: Any, **kwargs) -> None:
        """Include a router, unwrapping adapters."""
        if isinstance(router, FastAPIRouterAdapter):
            router = router.router
        self._app.include_router(router, **kwargs)

    def add_middleware(self, middleware_class: type, **kwargs) -> None:
        self._app.add_middleware(middleware_class, **kwargs)

    def exception_handler(self, exc_class: type) -> Callable:
        return self._app.exception_handler(exc_class)

    @property
    def app(self) -> FastAPI:
        """Get the underlying FastAPI application."""
        return self._app


class HTTPFrameworkAdapter:
    """Adapter for HTTP framework operations."""

    def __init__(self):
        self.FastAPI = FastAPI
        self.APIRouter = APIRouter
        self.HTTPException = HTTPException
        self.Query = Query
        self.Body = Body
        self.Path = Path
        self.Request = Request
        self.Depends = Depends
        self.JSONResponse = JSONResponse
        self.Response = Response

    def create_app(self, *args, **kwargs) -> FastAPIAppAdapter:
        """Create a FastAPI application instance wrapped in an adapter."""
        return FastAPIAppAdapter(self.FastAPI(*args, **kwargs))

    def create_router(self, *args, **kwargs) -> FastAPIRouterAdapter:
        """Create an APIRouter instance wrapped in an adapter."""
        return FastAPIRouterAdapter(self.APIRouter(*args, **kwargs))
