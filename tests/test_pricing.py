"""Tests for price conversion and resolution."""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from checkout_form.payments.base import PriceLookupService, ServiceDetails
from checkout_form.pricing import format_amount, resolve_amount, to_minor_units


class TestToMinorUnits:
    def test_float_price_has_no_drift(self):
        # 19.99 * 100 in binary floating point is 1998.9999999999998
        for _ in range(1000):
            assert to_minor_units(19.99) == 1999

    @pytest.mark.parametrize(
        "price,expected",
        [
            (Decimal("19.99"), 1999),
            ("0.29", 29),
            (0.57, 57),
            (1.005, 101),
            (10, 1000),
            (Decimal("0"), 0),
            (Decimal("4.995"), 500),
        ],
    )
    def test_conversions(self, price, expected):
        assert to_minor_units(price) == expected

    def test_returns_int(self):
        assert isinstance(to_minor_units(Decimal("19.99")), int)


class TestFormatAmount:
    def test_format(self):
        assert format_amount(1999) == "$19.99"
        assert format_amount(500) == "$5.00"
        assert format_amount(0) == "$0.00"


class TestServiceDetails:
    def test_float_price_parses(self):
        assert to_minor_units(ServiceDetails.model_validate({"price": 19.99}).price) == 1999

    def test_negative_price_rejected(self):
        with pytest.raises(Exception):
            ServiceDetails.model_validate({"price": -1})


class TestResolveAmount:
    @pytest.mark.asyncio
    async def test_resolves_once(self, price_lookup):
        assert await resolve_amount(price_lookup, "svc_123") == 1999
        price_lookup.fetch_service_details.assert_awaited_once_with("svc_123")

    @pytest.mark.asyncio
    async def test_lookup_failure_leaves_amount_unset(self, caplog):
        lookup = AsyncMock(spec=PriceLookupService)
        lookup.fetch_service_details.side_effect = RuntimeError("service down")
        with caplog.at_level("WARNING"):
            assert await resolve_amount(lookup, "svc_123") is None
        assert "Error fetching service details" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_service_id_skips_lookup(self, price_lookup):
        assert await resolve_amount(price_lookup, "") is None
        price_lookup.fetch_service_details.assert_not_awaited()
