"""Error taxonomy shared by the core and the handler layer.

Every error carries a short ``user_message`` that is safe to show in the
hub chat; the exception text itself keeps the detail for logs.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for expected bridge failures."""

    user_message = "Something went wrong"

    def __init__(self, detail: str = "", user_message: "str | None" = None) -> None:
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class NotFound(BridgeError):
    """No mapping or record exists; usually a "nothing to do" signal."""

    user_message = "No matching record found"


class AlreadyExists(BridgeError):
    """A write would violate a uniqueness constraint."""

    user_message = "A mapping already exists"


class InvalidInput(BridgeError):
    """Malformed address, token or command argument."""

    user_message = "Invalid input"


class CollaboratorFailure(BridgeError):
    """A call into the hub or peer platform failed."""

    user_message = "The platform call failed"


class BrokenChain(BridgeError):
    """A reply points at a hub message that was never correlated."""

    user_message = "Cannot send to WhatsApp"
