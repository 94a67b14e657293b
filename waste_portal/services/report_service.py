from __future__ import annotations

import csv
from datetime import date, datetime, time, timedelta, timezone
from io import StringIO

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.models import Collection, Location
from waste_portal.services.expense_service import list_expenses
from waste_portal.services.sale_service import list_sales
from waste_portal.services.transfer_service import list_transfers

REPORT_KINDS = ('collections', 'sales', 'expenses', 'transfers')


def date_range(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Inclusive calendar dates to a half-open UTC datetime range."""
    if start and end and end < start:
        raise ValueError('End date must not be before start date')
    start_at = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    end_at = datetime.combine(end, time.min, tzinfo=timezone.utc) + timedelta(days=1) if end else None
    return start_at, end_at


def _fmt_date(value: datetime | None) -> str:
    return value.strftime('%Y-%m-%d %H:%M') if value else ''


def _collection_rows(db: Session, start: datetime | None, end: datetime | None) -> list[list]:
    query = (
        select(Collection, Location.name, Location.district)
        .join(Location, Location.id == Collection.location_id)
        .order_by(Collection.collection_date.asc(), Collection.id.asc())
    )
    if start is not None:
        query = query.where(Collection.collection_date >= start)
    if end is not None:
        query = query.where(Collection.collection_date < end)
    return [
        [
            _fmt_date(row.collection_date),
            name,
            district,
            row.material,
            row.quantity,
            row.unit,
            row.amount_paid,
            row.commission_agent or '',
            row.commission_amount if row.commission_amount is not None else '',
            row.notes or '',
        ]
        for row, name, district in db.execute(query).all()
    ]


def build_report(db: Session, *, kind: str, start: date | None = None, end: date | None = None) -> tuple[list[str], list[list]]:
    if kind not in REPORT_KINDS:
        raise ValueError(f'Unknown report: {kind}')
    start_at, end_at = date_range(start, end)

    if kind == 'collections':
        header = ['Date', 'Location', 'District', 'Material', 'Quantity', 'Unit', 'Amount Paid', 'Commission Agent', 'Commission Amount', 'Notes']
        return header, _collection_rows(db, start_at, end_at)

    if kind == 'sales':
        header = ['Date', 'Godown', 'Buyer', 'Material', 'Quantity', 'Unit', 'Sale Amount', 'Payment Status', 'Amount Due', 'Notes']
        rows = [
            [
                _fmt_date(sale['sale_date']),
                sale['godown']['name'],
                sale['buyer_name'],
                sale['material'],
                sale['quantity'],
                sale['unit'],
                sale['sale_amount'],
                sale['payment_status'],
                sale['amount_due'],
                sale['notes'] or '',
            ]
            for sale in reversed(list_sales(db, start=start_at, end=end_at))
        ]
        return header, rows

    if kind == 'expenses':
        header = ['Date', 'Category', 'Amount', 'Paid To', 'Location', 'Notes']
        rows = [
            [
                _fmt_date(expense['expense_date']),
                expense['category'],
                expense['amount'],
                expense['paid_to'],
                expense['location']['name'] if expense['location'] else '',
                expense['notes'] or '',
            ]
            for expense in reversed(list_expenses(db, start=start_at, end=end_at))
        ]
        return header, rows

    header = ['Date', 'From', 'To', 'Material', 'Quantity', 'Notes']
    rows = [
        [
            _fmt_date(transfer['transfer_date']),
            transfer['from_godown_name'],
            transfer['to_godown_name'],
            transfer['material'],
            transfer['quantity'],
            transfer['notes'] or '',
        ]
        for transfer in reversed(list_transfers(db, start=start_at, end=end_at, limit=None))
    ]
    return header, rows


def render_csv(header: list[str], rows: list[list]) -> str:
    sio = StringIO()
    writer = csv.writer(sio)
    writer.writerow(header)
    writer.writerows(rows)
    return sio.getvalue()
