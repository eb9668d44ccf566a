from fastapi import HTTPException

from storefront.exceptions import StorefrontError


def to_http(exc: StorefrontError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def request_id(request) -> str:
    return getattr(request.state, "request_id", "unknown")
