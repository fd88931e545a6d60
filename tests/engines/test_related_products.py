"""
Tests for related-product bundle management.

Covers:
- Grouping a flat list into standalone and bundle entries
- Proportional scaling of related quantities (4 places, floored at zero)
- Bundle construction from stock relations
- Saving an edited line back into the list
- Deleting a line or a whole bundle
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from sales_engines.line_calculator import compute_line_totals
from sales_engines.related_products import (
    add_lines,
    apply_main_quantity_change,
    build_related_group,
    delete_line,
    flatten,
    group_lines,
    resize_related_lines,
    save_edited_line,
    visible_lines,
)
from sales_kernel.domain.document import GroupEntry, StandaloneEntry
from sales_kernel.domain.pricing import StockRelation
from sales_kernel.exceptions import LineNotFoundError, RelatedQuantityEditError
from tests.conftest import make_line, make_product


def make_bundle(main_qty="2", related_qty="8", key="main-500"):
    main = compute_line_totals(
        make_line(
            local_id="line-1",
            quantity=main_qty,
            related_product_key=key,
            is_main_related_product=True,
            related_stock_id=500,
        )
    )
    related = compute_line_totals(
        make_line(
            local_id="line-2",
            quantity=related_qty,
            unit_price="5",
            related_product_key=key,
            related_stock_id=500,
            product=make_product(code="STK-REL", product_id=501),
        )
    )
    return main, related


def make_relation(quantity="3", stock_id=501, code="STK-REL"):
    return StockRelation(
        relation_id=1,
        related_stock_id=stock_id,
        related_stock_code=code,
        quantity=Decimal(quantity),
        related_stock_name="Bolt",
    )


class TestGroupLines:
    """Flat list to entries."""

    def test_standalone_and_group(self):
        main, related = make_bundle()
        single = make_line(local_id="line-9")
        entries = group_lines([single, related, main])

        assert isinstance(entries[0], StandaloneEntry)
        assert isinstance(entries[1], GroupEntry)
        group = entries[1]
        assert group.main.local_id == "line-1"
        assert [r.local_id for r in group.related] == ["line-2"]
        assert group.main.related_lines == group.related

    def test_missing_main_flag_picks_lowest_id(self, captured_logs):
        main, related = make_bundle()
        main = replace(main, is_main_related_product=False, local_id="line-3")
        (group,) = group_lines([main, related])

        assert group.main.local_id == "line-2"
        assert group.main.is_main_related_product
        assert any(r["message"] == "related_group_without_main" for r in captured_logs())

    def test_flatten_is_main_first(self):
        main, related = make_bundle()
        flat = flatten(group_lines([related, main]))
        assert [l.local_id for l in flat] == ["line-1", "line-2"]

    def test_visible_lines_hide_related(self):
        main, related = make_bundle()
        single = make_line(local_id="line-9")
        assert [l.local_id for l in visible_lines([main, related, single])] == [
            "line-1",
            "line-9",
        ]


class TestMainQuantityChange:
    """Related quantities follow the main line."""

    def test_ratio_scaling(self):
        """Main 2 -> 3 scales a related line of 8 to 12."""
        main, related = make_bundle()
        (group,) = group_lines([main, related])
        scaled = apply_main_quantity_change(group, 3)

        assert scaled.main.quantity == Decimal("3")
        assert scaled.related[0].quantity == Decimal("12")
        assert scaled.main.line_total == Decimal("300")
        assert scaled.related[0].line_total == Decimal("60")
        assert scaled.main.related_lines == scaled.related

    def test_related_sum_follows_ratio(self):
        main, related = make_bundle(main_qty="4", related_qty="7")
        other = replace(related, local_id="line-3", quantity=Decimal("2.5"))
        (group,) = group_lines([main, related, other])
        scaled = apply_main_quantity_change(group, 6)

        before = sum(l.quantity for l in group.related)
        after = sum(l.quantity for l in scaled.related)
        assert after == before * Decimal("1.5")
        assert [l.quantity for l in scaled.related] == [Decimal("10.5"), Decimal("3.75")]

    def test_rounded_to_four_places(self):
        main, related = make_bundle(main_qty="3", related_qty="1")
        (group,) = group_lines([main, related])
        scaled = apply_main_quantity_change(group, 1)

        assert scaled.related[0].quantity == Decimal("0.3333")

    def test_negative_ratio_floored_at_zero(self):
        main, related = make_bundle()
        (group,) = group_lines([main, related])
        scaled = apply_main_quantity_change(group, -2)

        assert scaled.main.quantity == Decimal("-2")
        assert scaled.related[0].quantity == 0

    def test_zero_previous_quantity_skips_scaling(self, captured_logs):
        main, related = make_bundle(main_qty="0")
        (group,) = group_lines([main, related])
        scaled = apply_main_quantity_change(group, 5)

        assert scaled.main.quantity == Decimal("5")
        assert scaled.related[0].quantity == Decimal("8")
        assert any(r["message"] == "related_scaling_skipped" for r in captured_logs())


class TestBuildRelatedGroup:
    """New bundles from stock relations."""

    def test_bundle_keyed_by_main_stock(self):
        main = make_line(quantity="2", product=make_product(product_id=500))
        group = build_related_group(
            main, [make_relation("3")], related_prices=[Decimal("4")]
        )

        assert group.key == "main-500"
        assert group.main.is_main_related_product
        assert group.main.related_stock_id == 500
        (rel,) = group.related
        assert rel.quantity == Decimal("6")
        assert rel.relation_quantity == Decimal("3")
        assert rel.unit_price == Decimal("4")
        assert rel.related_product_key == "main-500"
        assert rel.line_total == Decimal("24")

    def test_missing_price_and_discounts_default_to_zero(self):
        main = make_line(product=make_product(product_id=500))
        group = build_related_group(main, [make_relation(), make_relation(stock_id=502)])

        assert [r.unit_price for r in group.related] == [0, 0]
        assert group.related[0].discount_rates == (0, 0, 0)

    def test_related_discounts_applied(self):
        main = make_line(product=make_product(product_id=500))
        group = build_related_group(
            main,
            [make_relation()],
            related_prices=[Decimal("10")],
            related_discounts=[(Decimal("5"), None)],
        )
        assert group.related[0].discount_rates == (Decimal("5"), 0, 0)

    def test_related_lines_get_distinct_ids(self):
        main = make_line(product=make_product(product_id=500))
        group = build_related_group(main, [make_relation(), make_relation(stock_id=502)])
        ids = {l.local_id for l in group.lines}
        assert len(ids) == 3

    def test_main_without_stock_id_rejected(self):
        main = make_line(product=make_product(product_id=None))
        with pytest.raises(ValueError):
            build_related_group(main, [make_relation()])

    def test_resize_follows_relation_quantity(self):
        main = make_line(quantity="2", product=make_product(product_id=500))
        group = build_related_group(main, [make_relation("3")])
        resized = resize_related_lines(replace(group.main, quantity=Decimal("5")))

        assert resized.related_lines[0].quantity == Decimal("15")


class TestSaveEditedLine:
    """Putting an edited line back into the list."""

    def test_main_quantity_change_scales_bundle_in_place(self):
        main, related = make_bundle()
        single = make_line(local_id="line-9")
        lines = [single, main, related]
        saved = replace(main, quantity=Decimal("3"))

        result = save_edited_line(lines, main, saved)

        assert [l.local_id for l in result] == ["line-9", "line-1", "line-2"]
        assert result[1].quantity == Decimal("3")
        assert result[2].quantity == Decimal("12")

    def test_saved_bundle_moves_to_front(self):
        main, related = make_bundle()
        single = make_line(local_id="line-9")
        new_related = replace(related, quantity=Decimal("20"))
        saved = replace(main, related_lines=(new_related,))

        result = save_edited_line([single, main, related], main, saved)

        assert [l.local_id for l in result] == ["line-1", "line-2", "line-9"]
        assert result[1].quantity == Decimal("20")

    def test_plain_line_replaced_in_place(self):
        first = make_line(local_id="line-1")
        second = make_line(local_id="line-2")
        saved = replace(second, unit_price=Decimal("7"))

        result = save_edited_line([first, second], second, saved)

        assert result[1].unit_price == Decimal("7")
        assert result[1].line_total == Decimal("70")

    def test_related_quantity_change_rejected(self):
        main, related = make_bundle()
        saved = replace(related, quantity=Decimal("16"))

        with pytest.raises(RelatedQuantityEditError) as exc_info:
            save_edited_line([main, related], related, saved)
        assert exc_info.value.code == "RELATED_QUANTITY_READONLY"
        assert exc_info.value.group_key == "main-500"

    def test_related_price_edit_leaves_main_alone(self):
        main, related = make_bundle()
        saved = replace(related, unit_price=Decimal("6"))

        result = save_edited_line([main, related], related, saved)

        assert result[0] == main
        assert result[1].quantity == Decimal("8")
        assert result[1].line_total == Decimal("48")

    def test_unknown_original_rejected(self):
        line = make_line(local_id="line-1")
        with pytest.raises(LineNotFoundError):
            save_edited_line([line], make_line(local_id="line-2"), line)


class TestAddAndDelete:
    """List edits that treat a bundle as one unit."""

    def test_add_appends_nested_related(self):
        main, related = make_bundle()
        main = replace(main, related_lines=(related,))
        result = add_lines([make_line(local_id="line-9")], main)
        assert [l.local_id for l in result] == ["line-9", "line-1", "line-2"]

    def test_delete_whole_group_by_key(self):
        main, related = make_bundle()
        single = make_line(local_id="line-9")
        remaining, removed = delete_line([main, related, single], "line-2")

        assert [l.local_id for l in remaining] == ["line-9"]
        assert {l.local_id for l in removed} == {"line-1", "line-2"}

    def test_delete_main_with_nested_lines(self):
        nested = make_line(local_id="temp-r")
        main = make_line(local_id="temp-m", related_lines=(nested,))
        remaining, removed = delete_line([main, nested], "temp-m")

        assert remaining == ()
        assert len(removed) == 2

    def test_delete_single_line(self):
        first = make_line(local_id="line-1")
        second = make_line(local_id="line-2")
        remaining, removed = delete_line([first, second], "line-1")

        assert remaining == (second,)
        assert removed == (first,)

    def test_delete_unknown_line(self):
        with pytest.raises(LineNotFoundError):
            delete_line([make_line(local_id="line-1")], "line-5")
