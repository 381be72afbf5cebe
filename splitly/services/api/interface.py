"""
Abstract Ledger Backend Interface

DESIGN DECISION: The ledger store talks to the collaborator backend only
through this interface. This allows us to:
1. Keep the store free of HTTP details and backend field names
2. Use an in-memory fake for testing
3. Swap the transport (REST today) without touching business logic

Every method is a coroutine; every failure surfaces as a BackendError
subclass with a human-readable message.
"""

from abc import ABC, abstractmethod
from typing import Optional

from splitly.models.ledger import (
    Expense,
    ExpenseDraft,
    Friend,
    FriendRequest,
    Group,
    Settlement,
    SettlementDraft,
)


class LedgerBackend(ABC):
    """
    Abstract interface for the collaborator REST surface.
    """

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_groups(self) -> list[Group]:
        """
        List the groups the signed-in user belongs to.

        Returns:
            Groups including their members
        """
        pass

    @abstractmethod
    async def get_group(self, group_id: str) -> Group:
        """
        Fetch one group with its members.

        Raises:
            NotFoundError: If the group doesn't exist or isn't visible
        """
        pass

    @abstractmethod
    async def create_group(
        self,
        name: str,
        currency: str,
        description: Optional[str] = None,
    ) -> Group:
        """Create a group owned by the signed-in user."""
        pass

    @abstractmethod
    async def join_group(self, invite_code: str) -> Group:
        """
        Join a group by invite code.

        Raises:
            NotFoundError: If the code doesn't match a group
        """
        pass

    @abstractmethod
    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Group:
        """Change a group's details. Only the given fields are sent."""
        pass

    @abstractmethod
    async def delete_group(self, group_id: str) -> None:
        """Delete a group with all of its expenses and settlements."""
        pass

    @abstractmethod
    async def add_group_member(self, group_id: str, user_id: str) -> None:
        pass

    @abstractmethod
    async def leave_group(self, group_id: str) -> None:
        """Leave a group."""
        pass

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_group_expenses(self, group_id: str) -> list[Expense]:
        """List a group's expenses, each with its splits."""
        pass

    @abstractmethod
    async def create_expense(self, draft: ExpenseDraft) -> Expense:
        """
        Create an expense.

        Args:
            draft: A draft that already passed validation

        Returns:
            The expense as persisted by the backend
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> None:
        """Delete an expense by id."""
        pass

    # -------------------------------------------------------------------------
    # Settlements
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_group_settlements(self, group_id: str) -> list[Settlement]:
        """List a group's settlements."""
        pass

    @abstractmethod
    async def create_settlement(self, draft: SettlementDraft) -> Settlement:
        """Record a settlement."""
        pass

    @abstractmethod
    async def delete_settlement(self, settlement_id: str) -> None:
        """Delete a settlement by id."""
        pass

    # -------------------------------------------------------------------------
    # Social
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_friends(self) -> list[Friend]:
        pass

    @abstractmethod
    async def list_friend_requests(self) -> list[FriendRequest]:
        """List received and sent friend requests."""
        pass

    @abstractmethod
    async def delete_friend(self, friend_id: str) -> None:
        """Remove a friend-list entry (and its reverse entry on the backend)."""
        pass

    @abstractmethod
    async def send_friend_request(self, to_user_id: str) -> None:
        pass

    @abstractmethod
    async def accept_friend_request(self, request_id: str) -> None:
        pass

    @abstractmethod
    async def reject_friend_request(self, request_id: str) -> None:
        pass


class BackendError(Exception):
    """Base exception for backend operations."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthorizationError(BackendError):
    """Missing or invalid bearer credential."""
    pass


class NotFoundError(BackendError):
    """Entity not found on the backend."""
    pass


class BackendConnectionError(BackendError):
    """Could not reach the backend."""
    pass


class WireFormatError(BackendError):
    """Backend returned a payload we cannot parse."""
    pass
