"""
Settlement Modules.

Thin orchestration layers over the settlement kernel and engines.
Each module contains:
- Domain models (the nouns)
- Workflows (state machines)
- Configuration schemas
- A service facade for callers

Modules:
- invoice_payment: item-level payments against purchase and sales invoices

Actual computation lives in the engines.
"""
