"""
Pricing reference mapping: price lists, pricing rules, discount limits and
stock relations from their service records.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from sales_kernel.domain.document import ProductRef
from sales_kernel.domain.pricing import (
    DiscountLimit,
    PricingRuleLine,
    ProductPrice,
    StockRelation,
)


@dataclass(frozen=True)
class StockRecord:
    """A stock as the product service describes it, with its relations."""

    stock_id: int
    stock_code: str
    stock_name: str
    group_code: str | None = None
    relations: tuple[StockRelation, ...] = ()

    @property
    def product(self) -> ProductRef:
        return ProductRef(
            product_id=self.stock_id,
            product_code=self.stock_code,
            product_name=self.stock_name,
            group_code=self.group_code,
        )

    def price_request(self) -> dict[str, str]:
        return {"productCode": self.stock_code, "groupCode": self.group_code or ""}


def product_price_from_record(record: Mapping[str, Any]) -> ProductPrice:
    return ProductPrice(
        product_code=record.get("productCode") or "",
        currency=record.get("currency") or "",
        list_price=record.get("listPrice"),
        group_code=record.get("groupCode"),
        cost_price=record.get("costPrice"),
        discount1=record.get("discount1"),
        discount2=record.get("discount2"),
        discount3=record.get("discount3"),
    )


def pricing_rules_from_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[PricingRuleLine, ...]:
    return tuple(
        PricingRuleLine(
            pricing_rule_header_id=int(r["pricingRuleHeaderId"]),
            stock_code=r.get("stokCode") or r.get("stockCode") or "",
            min_quantity=r.get("minQuantity"),
            max_quantity=r.get("maxQuantity"),
            fixed_unit_price=r.get("fixedUnitPrice"),
            currency_code=r.get("currencyCode"),
            discount_rate1=r.get("discountRate1"),
            discount_rate2=r.get("discountRate2"),
            discount_rate3=r.get("discountRate3"),
            rule_line_id=r.get("id"),
        )
        for r in records
    )


def discount_limits_from_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[DiscountLimit, ...]:
    return tuple(
        DiscountLimit(
            erp_product_group_code=r["erpProductGroupCode"],
            max_discount1=r.get("maxDiscount1"),
            max_discount2=r.get("maxDiscount2"),
            max_discount3=r.get("maxDiscount3"),
            salesperson_id=r.get("salespersonId"),
            salesperson_name=r.get("salespersonName"),
        )
        for r in records
    )


def stock_from_record(
    record: Mapping[str, Any], related_stock_ids: Sequence[int] | None = None
) -> StockRecord:
    """Stock with its usable relations.

    Relations without a related stock id or code are dropped.  When
    ``related_stock_ids`` is given, only those relations are kept, in that
    order.
    """
    relations = [
        StockRelation(
            relation_id=int(r.get("id") or 0),
            related_stock_id=int(r["relatedStockId"]),
            related_stock_code=r["relatedStockCode"],
            quantity=r.get("quantity"),
            related_stock_name=r.get("relatedStockName"),
        )
        for r in record.get("parentRelations") or ()
        if r.get("relatedStockId") and r.get("relatedStockCode")
    ]
    if related_stock_ids is not None:
        by_id = {rel.related_stock_id: rel for rel in relations}
        relations = [by_id[i] for i in related_stock_ids if i in by_id]
    return StockRecord(
        stock_id=int(record["id"]),
        stock_code=record.get("erpStockCode") or "",
        stock_name=record.get("stockName") or "",
        group_code=record.get("grupKodu") or None,
        relations=tuple(relations),
    )
