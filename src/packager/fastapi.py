"""
FastAPI Integration for Packager.
"""

from typing import Any, Callable, Optional

from fastapi import HTTPException, Request
from fastapi.responses import Response

from .config import VERSION, OptionsLike
from .core import get_default_packager
from .errors import PackagerError
from .schema import Schema

MEDIA_TYPE = "application/octet-stream"


class PackagerResponse(Response):
    """FastAPI Response class carrying a packed value."""

    media_type = MEDIA_TYPE

    def __init__(
        self,
        content: Any,
        schema: Optional[Schema] = None,
        options: OptionsLike = None,
        filename: str = None,
        **kwargs,
    ):
        """
        Initialize the PackagerResponse.

        Parameters
        ----------
        content : Any
            The value to pack.
        schema : Schema, optional
            Pack in schema mode against this schema; auto mode otherwise.
        options : Options or mapping, optional
            Per-response options.
        filename : str, optional
            Filename for the response.
        **kwargs
            Additional arguments passed to Response.
        """
        self.schema = schema
        self.options = options
        super().__init__(content, media_type=MEDIA_TYPE, **kwargs)
        self.headers["X-Packager-Version"] = str(VERSION)
        self.headers["X-Packager-Mode"] = "schema" if schema is not None else "auto"
        if schema is not None:
            self.headers["X-Packager-Schema"] = f"{schema.name}/{schema.version}"
        if filename:
            self.headers["Content-Disposition"] = f'attachment; filename="{filename}"'

    def render(self, content: Any) -> bytes:
        if self.schema is not None:
            return get_default_packager().pack(content, self.schema, self.options)
        return get_default_packager().pack(content, self.options)


async def _read_body(request: Request) -> bytes:
    if request.headers.get("content-type") != MEDIA_TYPE:
        raise HTTPException(
            status_code=400, detail=f"Expected {MEDIA_TYPE} content type."
        )
    return await request.body()


async def get_packed_data(request: Request) -> Any:
    """Dependency to extract an auto-mode value from an incoming FastAPI Request.

    Parameters
    ----------
    request : Request
        The FastAPI request object.

    Returns
    -------
    Any
        The decoded value.

    Raises
    ------
    HTTPException
        If content type is wrong or invalid packet.
    """
    body = await _read_body(request)
    try:
        return get_default_packager().unpack(body)
    except PackagerError as e:
        raise HTTPException(status_code=422, detail=f"Invalid packet: {e}")


def packed_body(schema: Schema, options: OptionsLike = None) -> Callable:
    """Build a dependency that decodes the request body against ``schema``."""

    async def dependency(request: Request) -> Any:
        body = await _read_body(request)
        try:
            return get_default_packager().unpack(body, schema, options)
        except PackagerError as e:
            raise HTTPException(status_code=422, detail=f"Invalid packet: {e}")

    return dependency
