"""
Lending Kernel

Transactional core of an inventory-backed lending catalog:
- Loan create/close/bulk-destroy as single storage transactions
- Item stock re-derived from open loans, never incremented
- Per-tenant due-date policy
- Idempotent loan import
- Member-scoped loan listings
"""

__version__ = "0.1.0"
