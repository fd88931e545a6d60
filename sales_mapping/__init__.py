"""
Pure mappers between document-service records and the editable document
model.  ZERO I/O: callers fetch records and send the payloads.
"""

from sales_mapping.approval import (
    WaitingApproval,
    approval_request_from_report,
    approve_payload,
    find_waiting_action,
    reject_payload,
    start_approval_payload,
    waiting_approvals_from_records,
)
from sales_mapping.document import (
    LineSyncPlan,
    header_from_detail,
    header_to_payload,
    line_from_detail,
    plan_line_sync,
    to_bulk_create_request,
    to_create_dto,
    to_form_state,
    to_update_dto,
)
from sales_mapping.exchange_rates import (
    currency_code_for,
    currency_options_from_records,
    find_currency_option,
    official_rates_from_records,
    rates_from_detail,
    rates_from_official,
    rates_to_create_dtos,
    rates_to_update_dtos,
)
from sales_mapping.pricing import (
    StockRecord,
    discount_limits_from_records,
    pricing_rules_from_records,
    product_price_from_record,
    stock_from_record,
)

__all__ = [
    "LineSyncPlan",
    "StockRecord",
    "WaitingApproval",
    "approval_request_from_report",
    "approve_payload",
    "currency_code_for",
    "currency_options_from_records",
    "discount_limits_from_records",
    "find_currency_option",
    "find_waiting_action",
    "header_from_detail",
    "header_to_payload",
    "line_from_detail",
    "official_rates_from_records",
    "plan_line_sync",
    "pricing_rules_from_records",
    "product_price_from_record",
    "rates_from_detail",
    "rates_from_official",
    "rates_to_create_dtos",
    "rates_to_update_dtos",
    "reject_payload",
    "start_approval_payload",
    "stock_from_record",
    "to_bulk_create_request",
    "to_create_dto",
    "to_form_state",
    "to_update_dto",
    "waiting_approvals_from_records",
]
