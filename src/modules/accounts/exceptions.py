"""Account domain exceptions.

Raised by the Service Layer; views translate them into HTTP responses.
"""

from __future__ import annotations


class EmailAlreadyRegistered(Exception):
    """Another account already uses this e-mail address."""


class UserNotFound(Exception):
    """The referenced user does not exist."""
