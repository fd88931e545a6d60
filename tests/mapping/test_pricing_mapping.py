"""Tests for pricing reference mapping (prices, rules, limits, stocks)."""

from decimal import Decimal

from sales_mapping.pricing import (
    discount_limits_from_records,
    pricing_rules_from_records,
    product_price_from_record,
    stock_from_record,
)

STOCK_RECORD = {
    "id": 500,
    "erpStockCode": "STK-500",
    "stockName": "Pump",
    "grupKodu": "GRP-P",
    "parentRelations": [
        {"id": 1, "relatedStockId": 501, "relatedStockCode": "STK-501", "quantity": 2},
        {"id": 2, "relatedStockId": 502, "relatedStockCode": "STK-502", "quantity": 1},
        {"id": 3, "relatedStockId": None, "relatedStockCode": "STK-X", "quantity": 1},
        {"id": 4, "relatedStockId": 503, "relatedStockCode": "", "quantity": 1},
    ],
}


class TestStockFromRecord:
    def test_relations_without_id_or_code_dropped(self):
        stock = stock_from_record(STOCK_RECORD)

        assert stock.stock_code == "STK-500"
        assert [r.related_stock_id for r in stock.relations] == [501, 502]
        assert stock.relations[0].quantity == Decimal("2")

    def test_selected_relations_in_given_order(self):
        stock = stock_from_record(STOCK_RECORD, related_stock_ids=[502, 999, 501])
        assert [r.related_stock_id for r in stock.relations] == [502, 501]

    def test_product_and_price_request(self):
        stock = stock_from_record(STOCK_RECORD)

        assert stock.product.product_id == 500
        assert stock.product.group_code == "GRP-P"
        assert stock.price_request() == {"productCode": "STK-500", "groupCode": "GRP-P"}

    def test_blank_group_code(self):
        stock = stock_from_record({"id": 1, "grupKodu": ""})
        assert stock.group_code is None
        assert stock.price_request()["groupCode"] == ""


class TestPriceRecords:
    def test_product_price(self):
        price = product_price_from_record(
            {"productCode": "STK-500", "currency": "USD", "listPrice": 19.99, "discount2": 5}
        )

        assert price.list_price == Decimal("19.99")
        assert price.discounts == (None, Decimal("5"), None)

    def test_pricing_rules_accept_both_code_spellings(self):
        rules = pricing_rules_from_records(
            [
                {"pricingRuleHeaderId": 1, "stokCode": "A", "minQuantity": 1},
                {"pricingRuleHeaderId": 2, "stockCode": "B", "minQuantity": 5, "maxQuantity": 10},
            ]
        )

        assert [r.stock_code for r in rules] == ["A", "B"]
        assert rules[0].max_quantity is None
        assert rules[1].max_quantity == Decimal("10")

    def test_discount_limits(self):
        (limit,) = discount_limits_from_records(
            [{"erpProductGroupCode": "GRP-P", "maxDiscount1": 10, "maxDiscount2": None}]
        )

        assert limit.max_discount1 == Decimal("10")
        assert limit.max_discount2 is None
