"""
Sales Kernel

Domain value objects, typed exceptions and structured logging shared by the
sales document engine:
- Immutable document lines, exchange-rate rows and approval records
- Decimal-only arithmetic
- One engine for demands, orders and quotations (see DocumentKind)
"""

__version__ = "0.1.0"
