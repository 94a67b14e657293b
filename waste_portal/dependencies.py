from fastapi import Depends, Request
from sqlalchemy.orm import Session

from waste_portal.db import get_db
from waste_portal.services.stock_store import StockStore


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


def get_stock_store(db: Session = Depends(get_db)) -> StockStore:
    return StockStore(db)
