from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from waste_portal.config import settings
from waste_portal.models import Collection, Expense, Sale
from waste_portal.services.inventory_service import total_quantity_on_hand

TREND_DAYS = 7


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _as_decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def _sum(db: Session, column) -> Decimal:
    return _as_decimal(db.execute(select(func.coalesce(func.sum(column), 0))).scalar_one())


def get_dashboard_stats(db: Session, *, today: date | None = None) -> dict:
    today = today or datetime.now(tz=timezone.utc).date()
    today_start = _day_start(today)
    tomorrow_start = today_start + timedelta(days=1)

    total_collections = db.execute(select(func.count(Collection.id))).scalar_one()
    today_collections = db.execute(
        select(func.count(Collection.id)).where(
            Collection.collection_date >= today_start,
            Collection.collection_date < tomorrow_start,
        )
    ).scalar_one()

    recent_sales = [
        {
            'id': row.id,
            'buyer_name': row.buyer_name,
            'material': row.material,
            'quantity': row.quantity,
            'sale_amount': row.sale_amount,
            'sale_date': row.sale_date,
        }
        for row in db.execute(
            select(Sale.id, Sale.buyer_name, Sale.material, Sale.quantity, Sale.sale_amount, Sale.sale_date)
            .order_by(Sale.sale_date.desc(), Sale.id.desc())
            .limit(settings.recent_sales_limit)
        ).all()
    ]

    trend_start = _day_start(today - timedelta(days=TREND_DAYS - 1))
    window = db.execute(
        select(Collection.material, Collection.amount_paid, Collection.collection_date).where(
            Collection.collection_date >= trend_start,
            Collection.collection_date < tomorrow_start,
        )
    ).all()

    amount_by_day: dict[date, Decimal] = {}
    material_counts: Counter[str] = Counter()
    for material, amount_paid, collected_at in window:
        if collected_at.tzinfo is not None:
            collected_at = collected_at.astimezone(timezone.utc)
        day = collected_at.date()
        amount_by_day[day] = amount_by_day.get(day, Decimal('0')) + _as_decimal(amount_paid)
        material_counts[material] += 1

    collection_trend = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        collection_trend.append(
            {
                'date': day.strftime('%d/%m'),
                'amount': amount_by_day.get(day, Decimal('0')),
            }
        )

    return {
        'total_collections': total_collections,
        'today_collections': today_collections,
        'total_sales': _sum(db, Sale.sale_amount),
        'total_expenses': _sum(db, Expense.amount),
        'inventory_quantity': total_quantity_on_hand(db),
        'recent_sales': recent_sales,
        'collection_trend': collection_trend,
        'material_distribution': [
            {'material': material, 'collections': count} for material, count in material_counts.most_common()
        ],
    }
