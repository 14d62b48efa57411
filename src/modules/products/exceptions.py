"""Product domain exceptions.

Raised by the Service Layer; views translate them into HTTP responses.
"""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist or has been soft-deleted."""


class NotProductOwner(Exception):
    """The caller is neither the listing's seller nor an admin."""


class SellerRoleRequired(Exception):
    """Only sellers (or admins) may create listings."""
