"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The order does not exist or is not visible to the caller."""


class InvalidOrderStatus(Exception):
    """The order is not in a state that allows the requested transition."""


class JobAlreadyClaimed(InvalidOrderStatus):
    """Another rider claimed the job first."""


class RoleNotAllowed(Exception):
    """The caller's role (or relation to the order) forbids the operation."""


class InvalidOrderInput(Exception):
    """The request is well-formed but refers to something unusable."""


class InsufficientStock(Exception):
    """Not enough stock to fulfil the order."""


class ProductNotFound(Exception):
    """The product referenced by the order does not exist."""


class InactiveProduct(Exception):
    """The product referenced by the order is not on sale."""
