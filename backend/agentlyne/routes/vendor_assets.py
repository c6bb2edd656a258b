"""
Vendored browser SDKs served through the local cache
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..deps import get_asset_proxy
from ..errors import ApiError
from ..services.vendors import VendorAssetProxy

router = APIRouter(tags=["vendor"])

CACHE_CONTROL = {
    "cache": "public, max-age=86400",
    "network": "public, max-age=86400",
    "stale": "public, max-age=300",
    "stub": "no-store",
}


@router.get("/vendor/{name}.js")
async def vendor_asset(
    name: str,
    refresh: bool = Query(False),
    proxy: VendorAssetProxy = Depends(get_asset_proxy),
):
    if name not in proxy.assets:
        raise ApiError(404, "Unknown vendor asset")

    asset = await proxy.get(name, refresh=refresh)
    return Response(
        content=asset.body,
        media_type="application/javascript",
        headers={
            "Cache-Control": CACHE_CONTROL[asset.origin],
            "X-Vendor-Source": asset.origin,
        },
    )
