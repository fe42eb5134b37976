"""Storefront — furniture store backend.

User registration with email confirmation, JWT login, and a
CRUD surface for store clients.
"""

__version__ = "0.1.0"
