"""
Shared test fixtures and helpers for the Pinion test suite.
"""

from typing import Any, Dict, Optional

import pytest

from pinion import Pinion
from pinion.config import Configuration
from pinion.request import Request, RequestContext
from pinion.testing import TestClient


# ============================================================================
# Request Helpers
# ============================================================================


def make_context(
    method: str = "GET",
    path: str = "/",
    query: Optional[Dict[str, Any]] = None,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    config: Optional[Configuration] = None,
) -> RequestContext:
    """Build a request context without going through ASGI."""
    request = Request(
        method=method,
        path=path,
        query=dict(query or {}),
        headers={k.lower(): v for k, v in (headers or {}).items()},
        body=body,
    )
    return RequestContext(request=request, config=config or Configuration(mode="production"))


def make_client(*controllers, **options) -> TestClient:
    """Test client over a production-mode application serving ``controllers``."""
    options.setdefault("mode", "production")
    return TestClient(Pinion(controller=list(controllers), **options))


@pytest.fixture
def config() -> Configuration:
    return Configuration(mode="production")
