from __future__ import annotations

from decimal import Decimal, InvalidOperation

from waste_portal.services.stock_errors import InvalidInput

# Match the scale of the Quantity and Money columns in models.py.
QUANTITY_PLACES = 3
AMOUNT_PLACES = 2


def as_decimal(value, *, field: str) -> Decimal:
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidInput(f'Invalid {field}') from exc
    if not parsed.is_finite():
        raise InvalidInput(f'Invalid {field}')
    return parsed


def _check_places(parsed: Decimal, places: int, *, field: str) -> Decimal:
    if parsed != parsed.quantize(Decimal(1).scaleb(-places)):
        raise InvalidInput(f'{field.capitalize()} allows at most {places} decimal places')
    return parsed


def as_quantity(value, *, field: str = 'quantity') -> Decimal:
    parsed = as_decimal(value, field=field)
    if parsed <= 0:
        raise InvalidInput(f'{field.capitalize()} must be greater than zero')
    return _check_places(parsed, QUANTITY_PLACES, field=field)


def as_amount(value, *, field: str = 'amount') -> Decimal:
    parsed = as_decimal(value, field=field)
    if parsed < 0:
        raise InvalidInput(f'{field.capitalize()} cannot be negative')
    return _check_places(parsed, AMOUNT_PLACES, field=field)


def required_text(value: str | None, *, field: str) -> str:
    clean = (value or '').strip()
    if not clean:
        raise InvalidInput(f'{field.capitalize()} is required')
    return clean


def optional_text(value: str | None) -> str | None:
    clean = (value or '').strip()
    return clean or None
