"""
洗衣计价引擎单元测试（纯计算，不需要数据库）
"""
from decimal import Decimal

import pytest

from app.services.laundry_pricing import (
    CatalogPrices, Fees, LineRequest, MissingItemPolicy, PricedLine, PricingError,
    price_order, reprice_lines, resolve_unit_price, to_money,
)

SHIRT = CatalogPrices(
    item_id=1, name="Shirt", price=Decimal("120"),
    price_wash=Decimal("100"), price_iron=Decimal("80"), price_both=Decimal("150"),
)
TIE = CatalogPrices(item_id=2, name="Tie", price=Decimal("60"))
CATALOG = {SHIRT.item_id: SHIRT, TIE.item_id: TIE}


class TestResolveUnitPrice:
    """按服务类型选取单价"""

    @pytest.mark.parametrize("service_type,expected", [
        ("Wash + Iron", "150"),
        ("wash and IRON", "150"),
        ("Wash", "100"),
        ("Hand wash", "100"),
        ("Iron only", "80"),
        ("Dry Clean", "120"),
        (None, "120"),
        ("", "120"),
    ])
    def test_variant_selection(self, service_type, expected):
        assert resolve_unit_price(SHIRT, service_type) == Decimal(expected)

    def test_unset_variant_falls_back_to_base(self):
        assert resolve_unit_price(TIE, "Wash + Iron") == Decimal("60")
        assert resolve_unit_price(TIE, "Iron") == Decimal("60")


class TestPriceOrder:
    """完整计价"""

    def test_bulk_order_with_urgent_fee(self):
        priced = price_order(
            [LineRequest(item_id=1, quantity=20, service_type="Wash + Iron")],
            CATALOG, fees=Fees.of(urgent_fee=50), discount_requested=True,
        )

        assert priced.subtotal == Decimal("3000.00")
        assert priced.discount == Decimal("300.00")
        assert priced.total == Decimal("2750.00")
        assert priced.lines[0].unit_price == Decimal("150")

    def test_discount_needs_twenty_pieces(self):
        nineteen = price_order(
            [LineRequest(item_id=1, quantity=19, service_type="Wash")],
            CATALOG, discount_requested=True,
        )
        twenty = price_order(
            [LineRequest(item_id=1, quantity=10, service_type="Wash"),
             LineRequest(item_id=2, quantity=10)],
            CATALOG, discount_requested=True,
        )

        assert nineteen.discount == Decimal("0.00")
        assert nineteen.total == Decimal("1900.00")
        assert twenty.total_quantity == 20
        assert twenty.discount == Decimal("160.00")
        assert twenty.total == Decimal("1440.00")

    def test_discount_not_requested(self):
        priced = price_order([LineRequest(item_id=1, quantity=30)], CATALOG)
        assert priced.discount == Decimal("0.00")
        assert not priced.discount_applied

    def test_fees_and_service_charge_added(self):
        priced = price_order(
            [LineRequest(item_id=2, quantity=2)], CATALOG,
            fees=Fees.of(urgent_fee="25.50", service_charge="10"),
        )
        assert priced.total == Decimal("155.50")

    def test_same_inputs_give_same_total(self):
        lines = [
            LineRequest(item_id=1, quantity=21, service_type="Iron"),
            LineRequest(item_id=2, quantity=3, service_type="Wash"),
        ]
        fees = Fees.of(urgent_fee=25, service_charge=10)

        first = price_order(lines, CATALOG, fees=fees, discount_requested=True)
        second = price_order(lines, CATALOG, fees=fees, discount_requested=True)
        assert first.total == second.total
        assert first.lines == second.lines

    def test_empty_order_totals_fees_only(self):
        priced = price_order([], CATALOG, fees=Fees.of(service_charge=5))
        assert priced.subtotal == Decimal("0.00")
        assert priced.total == Decimal("5.00")

    def test_missing_item_dropped(self):
        priced = price_order(
            [LineRequest(item_id=1, quantity=2, service_type="Dry Clean"),
             LineRequest(item_id=404, quantity=5)],
            CATALOG,
        )
        assert len(priced.lines) == 1
        assert priced.dropped_item_ids == (404,)
        assert priced.total == Decimal("240.00")

    def test_missing_item_rejected(self):
        with pytest.raises(PricingError):
            price_order([LineRequest(item_id=404)], CATALOG, on_missing=MissingItemPolicy.REJECT)

    def test_line_snapshot_carries_name_and_service(self):
        line = price_order([LineRequest(item_id=2, quantity=3)], CATALOG).lines[0]
        assert line.name == "Tie"
        assert line.service_type == "N/A"
        assert line.line_total == Decimal("180")


class TestRepriceLines:
    """已冻结单价重新汇总"""

    def test_uses_frozen_prices(self):
        lines = [PricedLine(item_id=1, name="Shirt", service_type="Wash",
                            quantity=20, unit_price=Decimal("90"))]
        priced = reprice_lines(lines, Fees.of(urgent_fee=100), discount_requested=True)

        assert priced.subtotal == Decimal("1800.00")
        assert priced.discount == Decimal("180.00")
        assert priced.total == Decimal("1720.00")

    def test_to_money_rounds_half_up(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(None) == Decimal("0.00")
