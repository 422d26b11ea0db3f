from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ...dependencies import get_image_proxy
from ....services.image_proxy import ImageProxy

router = APIRouter()

PASSTHROUGH_HEADERS = ("cache-control",)


@router.get("/proxy")
async def proxy_image(
    key: Optional[str] = Query(None, description="Object storage key, e.g. uploads/a.jpg"),
    url: Optional[str] = Query(None, description="Absolute image URL"),
    proxy: ImageProxy = Depends(get_image_proxy)
):
    upstream = await proxy.open(proxy.target_for(key, url))

    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Expose-Headers": "Content-Type, Cache-Control",
    }
    for name in PASSTHROUGH_HEADERS:
        if name in upstream.headers:
            headers[name] = upstream.headers[name]

    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type=upstream.headers.get("content-type", "application/octet-stream"),
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
