"""
Accessor for the response cache built at application startup.

The instance lives on ``app.state`` (see ``app.main.lifespan``); tests
override this dependency instead of running the lifespan.
"""

from typing import Annotated

from fastapi import Depends, Request

from app.core.services.response_cache import ResponseCache


def get_response_cache(request: Request) -> ResponseCache:
    return request.app.state.response_cache


ResponseCacheDep = Annotated[ResponseCache, Depends(get_response_cache)]

__all__ = ["get_response_cache", "ResponseCacheDep"]
