"""
Typed Exception Hierarchy for the Sales Document Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (screens, API handlers, background jobs) must be able to tell a
locked exchange rate from an illegal approval transition without parsing
message strings. Every exception therefore:

  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example:
    try:
        rates = edit_override(rates, "USD", Decimal("33"), active_currency="USD", has_lines=True)
    except ExchangeRateInUseError as e:
        warn_user(code=e.code, currency=e.currency)

===============================================================================
WHAT IS *NOT* AN EXCEPTION
===============================================================================

    - Unresolved exchange rates       -> resolve_rate() returns None
    - Missing discount limit          -> evaluation with approval_status 0
    - Unknown currency option         -> raw currency string echoed back
    - Update DTO for a new line       -> to_update_dto() returns None
    - Discount above the limit        -> approval_status = 1 on the line

Those are states, not failures. Network failures raised by collaborators are
never wrapped; they propagate to the caller unchanged.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SalesEngineError (base)
    |
    +-- DocumentError
    |   +-- UnknownDocumentKindError
    |   +-- LineNotFoundError
    |   +-- DocumentReadonlyError
    |   +-- RelatedQuantityEditError
    |
    +-- ExchangeRateError
    |   +-- ExchangeRateInUseError
    |
    +-- ApprovalError
    |   +-- InvalidApprovalTransitionError
    |   +-- ApprovalActionNotAllowedError
    |   +-- ApprovalRequestNotFoundError
    |
    +-- ConfigError
        +-- InvalidEngineSettingsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|----------------------------------------
Document        | UNKNOWN_DOCUMENT_KIND         | Kind name not demand/order/quotation
                | LINE_NOT_FOUND                | Edit/delete targets an unknown local id
                | DOCUMENT_READONLY             | Edit attempted on Approved/Rejected doc
                | RELATED_QUANTITY_READONLY     | Quantity edit on a bundle's related line
----------------|-------------------------------|----------------------------------------
Exchange Rate   | EXCHANGE_RATE_IN_USE          | Editing the active currency's rate
----------------|-------------------------------|----------------------------------------
Approval        | INVALID_APPROVAL_TRANSITION   | e.g. start approval while Waiting
                | APPROVAL_ACTION_NOT_ALLOWED   | User has no pending action in active step
                | APPROVAL_REQUEST_NOT_FOUND    | Flow report has no approval request
----------------|-------------------------------|----------------------------------------
Config          | INVALID_ENGINE_SETTINGS       | YAML settings out of range / malformed
"""


class SalesEngineError(Exception):
    """
    Base exception for all sales engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SALES_ENGINE_ERROR"


# Document exceptions


class DocumentError(SalesEngineError):
    """Base exception for document-level errors."""

    code: str = "DOCUMENT_ERROR"


class UnknownDocumentKindError(DocumentError):
    """Document kind name is not registered."""

    code: str = "UNKNOWN_DOCUMENT_KIND"

    def __init__(self, kind_name: str):
        self.kind_name = kind_name
        super().__init__(f"Unknown document kind: {kind_name}")


class LineNotFoundError(DocumentError):
    """No line with the given local id exists in the editing state."""

    code: str = "LINE_NOT_FOUND"

    def __init__(self, local_id: str):
        self.local_id = local_id
        super().__init__(f"Line not found: {local_id}")


class DocumentReadonlyError(DocumentError):
    """
    Document is in a terminal approval status.

    Approved and rejected documents cannot be edited.
    """

    code: str = "DOCUMENT_READONLY"

    def __init__(self, document_id: int | None, status: int):
        self.document_id = document_id
        self.status = status
        super().__init__(
            f"Document {document_id} is read-only in approval status {status}"
        )


class RelatedQuantityEditError(DocumentError):
    """
    Quantity of a related line was edited directly.

    Related quantities follow their bundle's main line.
    """

    code: str = "RELATED_QUANTITY_READONLY"

    def __init__(self, local_id: str, group_key: str | None):
        self.local_id = local_id
        self.group_key = group_key
        super().__init__(
            f"Quantity of related line {local_id} follows the main line of {group_key}"
        )


# Exchange rate exceptions


class ExchangeRateError(SalesEngineError):
    """Base exception for exchange-rate errors."""

    code: str = "EXCHANGE_RATE_ERROR"


class ExchangeRateInUseError(ExchangeRateError):
    """
    The rate of the document's active currency cannot be edited while the
    document has lines priced in it.
    """

    code: str = "EXCHANGE_RATE_IN_USE"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"Exchange rate for {currency} is in use by the document and cannot be edited"
        )


# Approval exceptions


class ApprovalError(SalesEngineError):
    """Base exception for approval workflow errors."""

    code: str = "APPROVAL_ERROR"


class InvalidApprovalTransitionError(ApprovalError):
    """Requested approval status transition is not in the transition table."""

    code: str = "INVALID_APPROVAL_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid approval transition: {from_status} -> {to_status}"
        )


class ApprovalActionNotAllowedError(ApprovalError):
    """
    User tried to approve or reject without a pending action in the
    currently active step.
    """

    code: str = "APPROVAL_ACTION_NOT_ALLOWED"

    def __init__(self, action_id: int, user_id: int, reason: str):
        self.action_id = action_id
        self.user_id = user_id
        self.reason = reason
        super().__init__(
            f"User {user_id} cannot act on approval action {action_id}: {reason}"
        )


class ApprovalRequestNotFoundError(ApprovalError):
    """Document has no approval request yet."""

    code: str = "APPROVAL_REQUEST_NOT_FOUND"

    def __init__(self, document_id: int):
        self.document_id = document_id
        super().__init__(f"No approval request for document {document_id}")


# Configuration exceptions


class ConfigError(SalesEngineError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidEngineSettingsError(ConfigError):
    """Engine settings failed validation."""

    code: str = "INVALID_ENGINE_SETTINGS"

    def __init__(self, field_name: str, value: object, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(
            f"Invalid engine setting {field_name}={value!r}: {reason}"
        )
