"""Built-in middleware."""

from fastapi_request_chain.middlewares.timing import ResponseTimer

__all__ = ["ResponseTimer"]
