"""
sales_engines.related_products -- Related-product bundle management.

Responsibility:
    Group a flat line list into standalone entries and related-product
    bundles, keep bundle quantities proportional to the main line, and
    perform the list edits (save, delete) that must treat a bundle as one
    unit.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Each bundle has exactly one main line; when the data marks none (or
      several), the main-flagged line with the lowest id wins, then the
      lowest id overall.
    - Related quantities are never edited directly: they follow
      ``old_quantity x (new_main / old_main)`` rounded to 4 places and
      floored at zero.
    - Every line touched by a quantity change is re-run through
      ``compute_line_totals``.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Sequence

from sales_engines.line_calculator import compute_line_totals, quantize
from sales_engines.tracer import traced_engine
from sales_kernel.domain.document import (
    STANDALONE_GROUP_PREFIX,
    ZERO,
    DocumentLine,
    GroupEntry,
    LineEntry,
    ProductRef,
    StandaloneEntry,
    main_group_key,
    new_line_id,
    parse_line_id,
    to_decimal,
)
from sales_kernel.domain.pricing import StockRelation
from sales_kernel.exceptions import LineNotFoundError, RelatedQuantityEditError
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.related_products")

QUANTITY_PLACES = 4


def _id_order(line: DocumentLine) -> tuple[int, int]:
    # Persisted lines first by server id, then new lines in list order.
    server_id = parse_line_id(line.local_id)
    if server_id is None:
        return (1, 0)
    return (0, server_id)


def _group_key(line: DocumentLine) -> str:
    if line.related_product_key:
        return line.related_product_key
    return f"{STANDALONE_GROUP_PREFIX}{line.local_id}"


def group_lines(lines: Iterable[DocumentLine]) -> tuple[LineEntry, ...]:
    """Turn a flat line list into standalone and group entries.

    Entries keep the order in which their first line appears.  Within a
    group the main line comes first, followed by related lines by id.
    """
    buckets: dict[str, list[DocumentLine]] = {}
    for line in lines:
        buckets.setdefault(_group_key(line), []).append(line)

    entries: list[LineEntry] = []
    for key, bucket in buckets.items():
        if not bucket[0].is_grouped:
            entries.append(StandaloneEntry(line=bucket[0]))
            continue
        ordered = sorted(
            bucket, key=lambda l: (not l.is_main_related_product, _id_order(l))
        )
        main, related = ordered[0], tuple(ordered[1:])
        if not main.is_main_related_product:
            logger.warning("related_group_without_main", extra={"group_key": key})
        main = replace(main, is_main_related_product=True, related_lines=related)
        related = tuple(replace(r, is_main_related_product=False) for r in related)
        entries.append(GroupEntry(key=key, main=main, related=related))
    return tuple(entries)


def flatten(entries: Iterable[LineEntry]) -> tuple[DocumentLine, ...]:
    """Flat, main-first line list of ``entries``."""
    result: list[DocumentLine] = []
    for entry in entries:
        result.extend(entry.lines)
    return tuple(result)


def visible_lines(lines: Iterable[DocumentLine]) -> tuple[DocumentLine, ...]:
    """Lines shown as list rows: standalone lines and bundle mains."""
    return tuple(
        line for line in lines if not line.is_grouped or line.is_main_related_product
    )


@traced_engine("related_products.main_quantity", "1.0")
def apply_main_quantity_change(
    group: GroupEntry,
    new_main_quantity: Decimal | int | str,
    quantity_places: int = QUANTITY_PLACES,
) -> GroupEntry:
    """Change the main line's quantity and scale related lines with it.

    When the previous main quantity is not positive only the main line is
    updated; related lines keep their quantities.
    """
    new_qty = to_decimal(new_main_quantity)
    old_qty = group.main.quantity
    related = group.related
    if old_qty > 0:
        ratio = new_qty / old_qty
        related = tuple(
            compute_line_totals(
                replace(
                    line,
                    quantity=max(ZERO, quantize(line.quantity * ratio, quantity_places)),
                )
            )
            for line in group.related
        )
    else:
        logger.info(
            "related_scaling_skipped",
            extra={"group_key": group.key, "old_quantity": old_qty},
        )
    main = compute_line_totals(
        replace(group.main, quantity=new_qty, related_lines=related)
    )
    return GroupEntry(key=group.key, main=main, related=related)


def build_related_group(
    main: DocumentLine,
    relations: Sequence[StockRelation],
    related_prices: Sequence[Decimal | None] = (),
    related_discounts: Sequence[tuple[Decimal | None, ...]] = (),
    vat_rate: Decimal | None = None,
) -> GroupEntry:
    """Build a new bundle from a main line and its stock relations.

    The bundle key is ``main-<stockId>`` of the main product.  Each related
    line starts at ``relation.quantity x main.quantity`` and remembers the
    per-unit ratio in ``relation_quantity``.  ``related_prices`` and
    ``related_discounts`` run parallel to ``relations``; missing entries
    mean a zero price and no discounts.
    """
    stock_id = main.related_stock_id
    if stock_id is None and main.product is not None:
        stock_id = main.product.product_id
    if stock_id is None:
        raise ValueError("Main line of a related group needs a stock id")
    key = main_group_key(stock_id)
    line_vat = main.vat_rate if vat_rate is None else to_decimal(vat_rate)

    related: list[DocumentLine] = []
    for idx, relation in enumerate(relations):
        price = related_prices[idx] if idx < len(related_prices) else None
        discounts = related_discounts[idx] if idx < len(related_discounts) else ()
        rates = [to_decimal(d) if d is not None else ZERO for d in discounts]
        rates += [ZERO] * (3 - len(rates))
        related.append(
            compute_line_totals(
                DocumentLine(
                    local_id=new_line_id(),
                    product=ProductRef(
                        product_id=relation.related_stock_id,
                        product_code=relation.related_stock_code,
                        product_name=relation.related_stock_name or "",
                        group_code=relation.group_code,
                    ),
                    quantity=relation.quantity * main.quantity,
                    unit_price=to_decimal(price) if price is not None else ZERO,
                    discount_rate1=rates[0],
                    discount_rate2=rates[1],
                    discount_rate3=rates[2],
                    vat_rate=line_vat,
                    related_stock_id=stock_id,
                    related_product_key=key,
                    is_main_related_product=False,
                    relation_quantity=relation.quantity,
                )
            )
        )

    related_tuple = tuple(related)
    main_line = compute_line_totals(
        replace(
            main,
            related_stock_id=stock_id,
            related_product_key=key,
            is_main_related_product=True,
            related_lines=related_tuple,
        )
    )
    logger.info(
        "related_group_built",
        extra={"group_key": key, "related_count": len(related_tuple)},
    )
    return GroupEntry(key=key, main=main_line, related=related_tuple)


def resize_related_lines(main: DocumentLine) -> DocumentLine:
    """Recompute nested related quantities as ``relation_quantity x main``.

    Used while a new bundle is still being edited: related lines without a
    ``relation_quantity`` keep their quantity.
    """
    related = tuple(
        compute_line_totals(replace(r, quantity=r.relation_quantity * main.quantity))
        if r.relation_quantity is not None
        else r
        for r in main.related_lines
    )
    return replace(main, related_lines=related)


def _find(lines: Sequence[DocumentLine], local_id: str) -> DocumentLine:
    for line in lines:
        if line.local_id == local_id:
            return line
    raise LineNotFoundError(local_id)


@traced_engine("related_products.save", "1.0")
def save_edited_line(
    lines: Sequence[DocumentLine],
    original: DocumentLine,
    saved: DocumentLine,
    quantity_places: int = QUANTITY_PLACES,
) -> tuple[DocumentLine, ...]:
    """Put an edited line back into the list.

    - A saved line carrying ``related_lines`` replaces its whole bundle; the
      bundle moves to the front of the list.
    - A grouped main whose quantity changed scales its bundle in place.
    - Anything else replaces the original line in place.

    Raises:
        LineNotFoundError: if ``original`` is not in ``lines``.
        RelatedQuantityEditError: if ``original`` is a related line and
            ``saved`` changes its quantity.
    """
    _find(lines, original.local_id)
    key = original.related_product_key
    if (
        key
        and not original.is_main_related_product
        and saved.quantity != original.quantity
    ):
        raise RelatedQuantityEditError(original.local_id, key)
    saved = compute_line_totals(saved)

    if saved.related_lines:
        others = [
            l
            for l in lines
            if l.local_id != original.local_id
            and not (
                original.related_product_key
                and l.related_product_key == original.related_product_key
            )
        ]
        return (saved, *saved.related_lines, *others)

    if key and original.quantity > 0 and saved.quantity != original.quantity:
        ratio = saved.quantity / original.quantity
        result: list[DocumentLine] = []
        for line in lines:
            if line.local_id == original.local_id:
                result.append(saved)
            elif line.related_product_key == key:
                scaled = max(ZERO, quantize(line.quantity * ratio, quantity_places))
                result.append(compute_line_totals(replace(line, quantity=scaled)))
            else:
                result.append(line)
        return tuple(result)

    return tuple(saved if l.local_id == original.local_id else l for l in lines)


def add_lines(
    lines: Sequence[DocumentLine], new_line: DocumentLine
) -> tuple[DocumentLine, ...]:
    """Append a new line, followed by its nested related lines if any."""
    return (*lines, new_line, *new_line.related_lines)


def delete_line(
    lines: Sequence[DocumentLine], local_id: str
) -> tuple[tuple[DocumentLine, ...], tuple[DocumentLine, ...]]:
    """Remove a line, or its whole bundle when it belongs to one.

    Returns:
        ``(remaining, removed)``.

    Raises:
        LineNotFoundError: if no line has ``local_id``.
    """
    target = _find(lines, local_id)
    if target.related_product_key:
        key = target.related_product_key

        def doomed(line: DocumentLine) -> bool:
            return line.local_id == local_id or line.related_product_key == key

    elif target.related_lines:
        nested = {r.local_id for r in target.related_lines}

        def doomed(line: DocumentLine) -> bool:
            return line.local_id == local_id or line.local_id in nested

    else:

        def doomed(line: DocumentLine) -> bool:
            return line.local_id == local_id

    remaining = tuple(l for l in lines if not doomed(l))
    removed = tuple(l for l in lines if doomed(l))
    logger.info(
        "lines_deleted",
        extra={"local_id": local_id, "removed_count": len(removed)},
    )
    return remaining, removed
