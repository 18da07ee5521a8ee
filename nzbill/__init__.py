"""
NzBill - Source Package

The bill-tracking core behind the NzBill assistant: recurring bill
templates, monthly bill generation, paid/unpaid tracking and spending
analytics over a hosted data store.

DESIGN PRINCIPLES:
1. Generation is pure and idempotent
2. Local state is updated optimistically and rolled back on failure
3. Every mutation is auditable
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "NzBill Team"
