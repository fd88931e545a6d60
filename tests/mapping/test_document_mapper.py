"""
Tests for document mapping between server records and editing lines.

Covers:
- to_form_state grouping, ordering and nesting (server totals kept)
- Create/update DTOs (UI-only fields dropped, money rounded)
- Line sync planning
- Header mapping and bulk create payloads
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from sales_config.schema import EngineSettings
from sales_engines.line_calculator import compute_line_totals, set_discount_amount
from sales_engines.related_products import visible_lines
from sales_kernel.domain.document import DocumentHeader, ExchangeRateOverride
from sales_kernel.domain.document_kind import DEMAND, ORDER, QUOTATION
from sales_mapping.document import (
    header_from_detail,
    header_to_payload,
    line_from_detail,
    plan_line_sync,
    to_bulk_create_request,
    to_create_dto,
    to_form_state,
    to_update_dto,
)
from tests.conftest import make_line


def make_record(record_id, key=None, is_main=False, **overrides):
    record = {
        "id": record_id,
        "productId": 100 + record_id,
        "productCode": f"STK-{record_id}",
        "productName": f"Product {record_id}",
        "groupCode": "GRP-A",
        "quantity": 2,
        "unitPrice": 10.5,
        "discountRate1": 10,
        "discountAmount1": 2.1,
        "discountRate2": 0,
        "discountAmount2": 0,
        "discountRate3": 0,
        "discountAmount3": 0,
        "vatRate": 18,
        "vatAmount": 3.4,
        "lineTotal": 18.9,
        "lineGrandTotal": 22.3,
        "relatedProductKey": key,
        "isMainRelatedProduct": is_main,
        "approvalStatus": 0,
    }
    record.update(overrides)
    return record


class TestLineFromDetail:
    def test_persisted_local_id_and_product(self):
        line = line_from_detail(make_record(7))

        assert line.local_id == "line-7"
        assert line.server_id == 7
        assert line.product.product_code == "STK-7"
        assert line.product.group_code == "GRP-A"

    def test_server_totals_kept_verbatim(self):
        """lineTotal is not recomputed even when it disagrees with the inputs."""
        line = line_from_detail(make_record(7))

        assert line.unit_price == Decimal("10.5")
        assert line.vat_amount == Decimal("3.4")
        assert line.line_total == Decimal("18.9")
        assert line.line_grand_total == Decimal("22.3")

    def test_record_without_product(self):
        record = make_record(3, productCode=None, productName=None)
        assert line_from_detail(record).product is None


class TestToFormState:
    """Grouping and ordering of server lines."""

    def test_groups_ordered_by_main_id_main_first(self):
        records = [
            make_record(5, key=" main-9 "),
            make_record(4),
            make_record(6, key="main-9", is_main=True),
            make_record(2, key="main-9"),
        ]
        lines = to_form_state(records)

        assert [l.local_id for l in lines] == ["line-4", "line-6", "line-2", "line-5"]
        main = lines[1]
        assert [r.local_id for r in main.related_lines] == ["line-2", "line-5"]
        assert lines[3].related_product_key == "main-9"

    def test_group_without_main_flag_uses_lowest_id(self):
        lines = to_form_state([make_record(8, key="k"), make_record(3, key="k")])
        assert [l.local_id for l in lines] == ["line-3", "line-8"]

    def test_main_flags_preserved(self):
        records = [make_record(1, key="k", is_main=True), make_record(2, key="k")]
        lines = to_form_state(records)
        assert [l.is_main_related_product for l in lines] == [True, False]

    def test_group_without_main_flag_gets_one(self):
        lines = to_form_state([make_record(1, key="main-9"), make_record(2, key="main-9")])

        assert [l.is_main_related_product for l in lines] == [True, False]
        assert [r.local_id for r in lines[0].related_lines] == ["line-2"]
        assert [l.local_id for l in visible_lines(lines)] == ["line-1"]

    def test_group_with_two_main_flags_keeps_lowest(self):
        records = [
            make_record(2, key="main-9", is_main=True),
            make_record(1, key="main-9", is_main=True),
        ]
        lines = to_form_state(records)

        assert [l.local_id for l in lines] == ["line-1", "line-2"]
        assert [l.is_main_related_product for l in lines] == [True, False]
        assert not lines[0].related_lines[0].is_main_related_product

    def test_standalone_line_not_flagged_main(self):
        (line,) = to_form_state([make_record(4)])
        assert not line.is_main_related_product
        assert line.related_lines == ()

    def test_standalone_lines_by_id(self):
        lines = to_form_state([make_record(9), make_record(1, key="  ")])
        assert [l.local_id for l in lines] == ["line-1", "line-9"]
        assert lines[0].related_product_key is None

    def test_empty(self):
        assert to_form_state([]) == ()


class TestLineDtos:
    """Outgoing DTOs."""

    def setup_method(self):
        self.line = compute_line_totals(
            make_line(
                local_id="line-12",
                quantity="3",
                unit_price="33.333",
                discounts=("12.3456789", "0", "0"),
                is_editing=True,
                relation_quantity=Decimal("2"),
            )
        )

    def test_create_dto_drops_ui_fields(self):
        dto = to_create_dto(self.line, 55, QUOTATION)

        assert dto["quotationId"] == 55
        for ui_field in ("id", "localId", "isEditing", "relatedLines", "relationQuantity"):
            assert ui_field not in dto

    def test_money_rounded_rates_to_six_places(self):
        dto = to_create_dto(self.line, 55, QUOTATION)

        assert dto["quantity"] == 3.0
        assert dto["unitPrice"] == 33.333
        assert dto["discountRate1"] == 12.345679
        assert dto["lineTotal"] == float(
            (self.line.line_total).quantize(Decimal("0.01"))
        )
        assert all(isinstance(dto[k], float) for k in ("vatAmount", "lineGrandTotal"))

    def test_custom_money_places(self):
        dto = to_create_dto(self.line, 55, QUOTATION, EngineSettings(money_places=3))
        assert dto["lineTotal"] == float(self.line.line_total.quantize(Decimal("0.001")))

    def test_update_dto_parses_server_id(self):
        dto = to_update_dto(self.line, 55, DEMAND)

        assert dto["id"] == 12
        assert dto["demandId"] == 55
        assert "createdAt" not in dto

    def test_order_update_dto_carries_created_at(self):
        dto = to_update_dto(self.line, 55, ORDER)
        assert dto["createdAt"] is None
        assert dto["orderId"] == 55

    def test_new_line_has_no_update_dto(self):
        assert to_update_dto(make_line(local_id="temp-1"), 55, DEMAND) is None

    def test_suffixed_local_id_has_no_update_dto(self):
        assert to_update_dto(make_line(local_id="line-12abc"), 55, DEMAND) is None

    def test_amount_basis_dto_carries_derived_rate(self):
        line = set_discount_amount(make_line(local_id="line-1"), 1, "100")
        dto = to_create_dto(line, 1, DEMAND)
        assert dto["discountRate1"] == 10.0
        assert dto["discountAmount1"] == 100.0


class TestPlanLineSync:
    def test_routes_new_and_persisted_lines(self):
        lines = [make_line(local_id="line-1"), make_line(local_id="temp-2")]
        plan = plan_line_sync(lines, 9, QUOTATION)

        assert [d["id"] for d in plan.updates] == [1]
        assert len(plan.creates) == 1
        assert "id" not in plan.creates[0]
        assert not plan.is_empty

    def test_empty_plan(self):
        assert plan_line_sync([], 9, QUOTATION).is_empty


class TestHeader:
    def test_from_detail(self):
        header = header_from_detail(
            {
                "currency": "USD",
                "offerType": "Export",
                "status": 1,
                "deliveryDate": "2024-05-01T00:00:00",
                "offerNo": "Q-100",
                "customField": "x",
            },
            extra_fields=("customField",),
        )

        assert header.currency == "USD"
        assert header.offer_type == "Export"
        assert header.status == 1
        assert header.delivery_date == date(2024, 5, 1)
        assert header.extra == {"customField": "x"}

    def test_defaults(self):
        header = header_from_detail({})
        assert header.offer_type == "Domestic"
        assert header.status is None

    def test_payload(self):
        header = DocumentHeader(currency="TRY", offer_date=date(2024, 1, 2), extra={"k": 1})
        payload = header_to_payload(header)

        assert payload["currency"] == "TRY"
        assert payload["offerDate"] == "2024-01-02"
        assert payload["deliveryDate"] is None
        assert payload["k"] == 1


class TestBulkCreate:
    """Create document, lines and rates in one request."""

    def test_payload_shape(self):
        header = DocumentHeader(currency="USD")
        rates = (ExchangeRateOverride("temp-rate-1", "1", Decimal("32.5")),)
        request = to_bulk_create_request(
            header, [make_line(local_id="temp-1")], rates, QUOTATION
        )

        assert set(request) == {"quotation", "lines", "exchangeRates"}
        assert request["lines"][0]["quotationId"] == 0
        assert "id" not in request["lines"][0]
        assert request["exchangeRates"][0]["quotationId"] == 0
        assert request["exchangeRates"][0]["exchangeRate"] == 32.5

    def test_no_rates_key_without_rates(self):
        request = to_bulk_create_request(DocumentHeader(currency="TRY"), [], (), DEMAND)
        assert set(request) == {"demand", "lines"}

    def test_persisted_lines_still_created(self):
        line = replace(make_line(), local_id="line-4")
        request = to_bulk_create_request(DocumentHeader(currency="TRY"), [line], (), ORDER)
        assert request["lines"][0]["orderId"] == 0
