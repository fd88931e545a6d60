"""
Services layer: the document editing reducer and the session that talks to
the remote document, pricing and discount-limit services.
"""

from sales_services.collaborators import (
    DiscountLimitService,
    DocumentService,
    PricingService,
)
from sales_services.document_editor import (
    AddLine,
    ChangeCurrency,
    DeleteLine,
    EditExchangeRate,
    EditingState,
    Intent,
    SaveLine,
    SetDiscountAmount,
    SetDiscountLimits,
    SetDiscountRate,
    SetPricingRules,
    SetQuantity,
    SetUnitPrice,
    SetVatRate,
    reduce,
)
from sales_services.document_session import DocumentSession

__all__ = [
    "AddLine",
    "ChangeCurrency",
    "DeleteLine",
    "DiscountLimitService",
    "DocumentService",
    "DocumentSession",
    "EditExchangeRate",
    "EditingState",
    "Intent",
    "PricingService",
    "SaveLine",
    "SetDiscountAmount",
    "SetDiscountLimits",
    "SetDiscountRate",
    "SetPricingRules",
    "SetQuantity",
    "SetUnitPrice",
    "SetVatRate",
    "reduce",
]
