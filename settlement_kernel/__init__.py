"""
Settlement Kernel

Shared infrastructure for the invoice payment allocator:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Injectable clock
- Workflow value objects for the payment entry wizard
"""

__version__ = "0.1.0"
