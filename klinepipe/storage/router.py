"""FastAPI routes for reading stored kline payloads."""
from fastapi import APIRouter, Depends, HTTPException, Response

from klinepipe.dependencies import get_store
from klinepipe.storage.base import ContentStore, kline_key

router = APIRouter(prefix="/v1/klines", tags=["klines"])


@router.get("/{timeframe}/{symbol}")
async def get_klines(
    timeframe: str,
    symbol: str,
    store: ContentStore = Depends(get_store),
) -> Response:
    """Return the last stored payload for symbol/timeframe as JSON."""
    data = await store.read(kline_key(symbol.upper(), timeframe))
    if data is None:
        raise HTTPException(
            status_code=404,
            detail=f"No klines stored for {symbol.upper()}/{timeframe}",
        )
    return Response(content=data, media_type="application/json")
