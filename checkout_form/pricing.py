"""Price resolution: decimal service price to integer minor units."""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from .output_sanitizer import sanitize_error_detail
from .payments.base import PriceLookupService

logger = logging.getLogger(__name__)

Price = Union[Decimal, int, float, str]

_CENTS_PER_UNIT = Decimal(100)


def to_minor_units(price: Price) -> int:
    """Convert a decimal price to cents, rounding half up. 19.99 -> 1999."""
    if isinstance(price, float):
        # repr gives the shortest round-tripping literal, so 19.99 stays 19.99
        price = repr(price)
    amount = Decimal(price) * _CENTS_PER_UNIT
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_amount(amount_minor_units: int) -> str:
    """Display form of an amount, e.g. 1999 -> "$19.99"."""
    return f"${Decimal(amount_minor_units) / _CENTS_PER_UNIT:.2f}"


async def resolve_amount(lookup: PriceLookupService, service_id: Optional[str]) -> Optional[int]:
    """Fetch the service price once. Returns None when the price is unavailable."""
    if not service_id:
        logger.info("Service ID is undefined; no price to resolve")
        return None

    try:
        details = await lookup.fetch_service_details(service_id)
    except Exception as e:
        logger.warning("Error fetching service details for %s: %s", service_id, sanitize_error_detail(e))
        return None

    amount = to_minor_units(details.price)
    logger.info("Resolved price for service %s: %s", service_id, format_amount(amount))
    return amount
