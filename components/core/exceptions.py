"""Exceptions raised by the lending core."""


class LendingException(Exception):
    """Base class for faults raised (not returned) by the lending core."""


class UnauthorizedAccessError(LendingException, PermissionError):
    """The acting user is not the owner of the resource."""

    def __init__(self, requesting_user_id: int, owner_id: int) -> None:
        self.requesting_user_id = requesting_user_id
        self.owner_id = owner_id
        super().__init__(
            f"User {requesting_user_id} may not act on behalf of user {owner_id}."
        )


class StockError(LendingException, ValueError):
    """A ledger mutation would break the stock invariants."""
