"""
Engine settings schema.

Frozen dataclasses that YAML fragments are parsed into by
``sales_config.loader``.  Engines never read these directly; services pass
the individual values (precision, bounds) into the pure engine functions.
"""

from __future__ import annotations

import decimal
from dataclasses import dataclass
from decimal import Decimal

from sales_kernel.exceptions import InvalidEngineSettingsError

_ROUNDING_MODES = frozenset({
    decimal.ROUND_HALF_UP,
    decimal.ROUND_HALF_EVEN,
    decimal.ROUND_HALF_DOWN,
    decimal.ROUND_UP,
    decimal.ROUND_DOWN,
})


@dataclass(frozen=True)
class EngineSettings:
    """Numeric policy of the line engine.

    Attributes:
        money_places: Decimal places of persisted/displayed money values.
        quantity_places: Decimal places of scaled related-line quantities.
        rate_places: Decimal places of derived discount rates on the wire.
        rounding: ``decimal`` rounding mode name.
        default_vat_rate: VAT percent for newly added lines.
        discount_rate_min: Lower clamp for user-entered discount rates.
        discount_rate_max: Upper clamp for user-entered discount rates.
    """

    money_places: int = 2
    quantity_places: int = 4
    rate_places: int = 6
    rounding: str = decimal.ROUND_HALF_UP
    default_vat_rate: Decimal = Decimal("18")
    discount_rate_min: Decimal = Decimal("0")
    discount_rate_max: Decimal = Decimal("100")

    def __post_init__(self) -> None:
        for name in ("money_places", "quantity_places", "rate_places"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidEngineSettingsError(
                    name, value, "must be a non-negative integer"
                )
        if self.rounding not in _ROUNDING_MODES:
            raise InvalidEngineSettingsError(
                "rounding", self.rounding, "unknown decimal rounding mode"
            )
        if self.default_vat_rate < 0:
            raise InvalidEngineSettingsError(
                "default_vat_rate", self.default_vat_rate, "cannot be negative"
            )
        if self.discount_rate_min > self.discount_rate_max:
            raise InvalidEngineSettingsError(
                "discount_rate_min",
                self.discount_rate_min,
                "must not exceed discount_rate_max",
            )
