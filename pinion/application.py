"""
Pinion application - bootstrap of the route table, analyzer and ASGI app.

    app = Pinion(controller=[AnimalController], mode="production")
    app.use(LoggingMiddleware())
    asgi = app.initialize()
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple, Union

from .asgi import ASGIAdapter
from .config import Configuration
from .controller.analyzer import analyze_routes, print_analysis
from .controller.compiler import RouteInfo, build_route_table
from .controller.engine import ControllerEngine
from .middleware import Handler, Middleware, from_handler


class Pinion:
    """
    Application facade.

    Attributes:
        config: Current (immutable) configuration; ``set()`` replaces it
        middlewares: Application-level middleware, outermost first
        routes: Route table built by the last ``initialize()``
    """

    def __init__(self, config: Optional[Configuration] = None, **options: Any):
        self.config = config or Configuration()
        if options:
            self.config = self.config.replace(**options)
        self.middlewares: List[Middleware] = []
        self.routes: Tuple[RouteInfo, ...] = ()
        self.logger = logging.getLogger("pinion.application")

    def use(self, middleware: Union[Middleware, Handler]) -> "Pinion":
        """Register application-level middleware (runs for every matched route)."""
        if not hasattr(middleware, "execute"):
            middleware = from_handler(middleware)
        self.middlewares.append(middleware)
        return self

    def set(self, **options: Any) -> "Pinion":
        """Replace configuration options, e.g. ``app.set(mode="production")``."""
        self.config = self.config.replace(**options)
        return self

    def initialize(self) -> ASGIAdapter:
        """
        Build the route table and return the ASGI application.

        In ``debug`` mode the route analysis is printed.

        Raises:
            ControllerPathNotFoundFault: controller path does not exist
        """
        self.routes = build_route_table(self.config.controller, self.config.root_path)
        self.logger.info("Loaded %d route(s)", len(self.routes))
        if self.config.mode == "debug":
            print_analysis(analyze_routes(self.routes))
        engine = ControllerEngine(self.routes, self.config, self.middlewares)
        return ASGIAdapter(engine)

    def run(self, host: str = "127.0.0.1", port: int = 8000, log_level: str = "info") -> None:
        """Initialize and serve with uvicorn."""
        import uvicorn

        app = self.initialize()
        self.logger.info(f"Starting uvicorn server on {host}:{port}")
        uvicorn.run(app, host=host, port=port, log_level=log_level)
