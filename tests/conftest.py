"""
Shared fixtures and fakes.

No test talks to a real backend or socket: the transport, the backend and
the sleep used for reconnect backoff are all in-memory stand-ins.
"""

import asyncio
import itertools
from decimal import Decimal
from typing import Any, Optional

import pytest

from splitly.audit import AuditLogger
from splitly.channel import ChannelConnectionManager, Transport, TransportError
from splitly.config import ChannelSettings
from splitly.models.ledger import (
    Expense,
    ExpenseDraft,
    Friend,
    FriendRequest,
    Group,
    Member,
    Settlement,
    SettlementDraft,
    Split,
)
from splitly.services.api import BackendError, LedgerBackend, NotFoundError
from splitly.services.auth import InMemoryCredentialStore
from splitly.store import LedgerStore


# =============================================================================
# RECORD BUILDERS
# =============================================================================

def make_member(member_id: str, name: Optional[str] = None) -> Member:
    return Member(id=member_id, display_name=name or member_id.upper())


def make_group(group_id: str, member_ids: list[str], invite_code: Optional[str] = None) -> Group:
    return Group(
        id=group_id,
        name=f"Group {group_id}",
        members=[make_member(m) for m in member_ids],
        invite_code=invite_code,
    )


def make_expense(
    expense_id: str,
    paid_by: str,
    amount: str,
    splits: dict[str, str],
    group_id: str = "g1",
) -> Expense:
    return Expense(
        id=expense_id,
        group_id=group_id,
        description=f"Expense {expense_id}",
        amount=Decimal(amount),
        paid_by=paid_by,
        splits=[Split(member_id=m, amount=Decimal(a)) for m, a in splits.items()],
    )


def make_settlement(
    settlement_id: str,
    from_member: str,
    to_member: str,
    amount: str,
    group_id: str = "g1",
) -> Settlement:
    return Settlement(
        id=settlement_id,
        group_id=group_id,
        from_member=from_member,
        to_member=to_member,
        amount=Decimal(amount),
    )


# =============================================================================
# CHANNEL FAKES
# =============================================================================

class FakeTransport(Transport):
    """In-memory transport that records emits and can reject its handshake."""

    def __init__(self, fail_open: bool = False):
        super().__init__()
        self.fail_open = fail_open
        self.emitted: list[tuple[str, Any]] = []
        self.opened_with: Optional[tuple[str, str]] = None
        self.closed = False
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def open(self, url: str, token: str) -> None:
        self.opened_with = (url, token)
        if self.fail_open:
            raise TransportError("handshake rejected")
        self._connected = True

    async def close(self) -> None:
        self._connected = False
        self.closed = True

    async def emit(self, event: str, data: Any = None) -> None:
        self.emitted.append((event, data))

    def simulate_drop(self, reason: str = "transport close") -> None:
        self._connected = False
        self._notify_drop(reason)


class FakeTransportFactory:
    """Builds FakeTransports; the next ``failures`` of them reject the handshake."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        fail = self.failures > 0
        if fail:
            self.failures -= 1
        transport = FakeTransport(fail_open=fail)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


class SleepRecorder:
    """Replaces asyncio.sleep in the reconnect loop; records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# =============================================================================
# BACKEND FAKE
# =============================================================================

class FakeBackend(LedgerBackend):
    """
    In-memory backend.

    ``failing`` maps a method name to the error it raises; ``failing_groups``
    makes the per-group expense listing fail for those group ids.
    ``gates`` holds a listing call open until its event is set.
    """

    def __init__(self):
        self.groups: list[Group] = []
        self.expenses: list[Expense] = []
        self.settlements: list[Settlement] = []
        self.friends: list[Friend] = []
        self.friend_requests: list[FriendRequest] = []
        self.calls: list[tuple] = []
        self.failing: dict[str, BackendError] = {}
        self.failing_groups: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self._ids = itertools.count(1)

    def _call(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        error = self.failing.get(name)
        if error is not None:
            raise error

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def _wait_gate(self, name: str) -> None:
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()

    async def list_groups(self) -> list[Group]:
        self._call("list_groups")
        await self._wait_gate("list_groups")
        return list(self.groups)

    async def get_group(self, group_id: str) -> Group:
        self._call("get_group", group_id)
        for group in self.groups:
            if group.id == group_id:
                return group
        raise NotFoundError("Group not found", status_code=404)

    async def create_group(self, name: str, currency: str, description: Optional[str] = None) -> Group:
        self._call("create_group", name, currency, description)
        group = Group(
            id=f"g-new-{next(self._ids)}",
            name=name,
            currency=currency,
            description=description,
            members=[make_member("me")],
        )
        self.groups.append(group)
        return group

    async def join_group(self, invite_code: str) -> Group:
        self._call("join_group", invite_code)
        for group in self.groups:
            if group.invite_code == invite_code:
                return group
        raise NotFoundError("Invalid invite code", status_code=404)

    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Group:
        self._call("update_group", group_id, name, description, currency)
        group = await self.get_group(group_id)
        changes = {
            key: value
            for key, value in (("name", name), ("description", description), ("currency", currency))
            if value is not None
        }
        updated = group.model_copy(update=changes)
        self.groups = [updated if g.id == group_id else g for g in self.groups]
        return updated

    async def delete_group(self, group_id: str) -> None:
        self._call("delete_group", group_id)
        self.groups = [g for g in self.groups if g.id != group_id]

    async def add_group_member(self, group_id: str, user_id: str) -> None:
        self._call("add_group_member", group_id, user_id)
        group = await self.get_group(group_id)
        updated = group.model_copy(update={"members": list(group.members) + [make_member(user_id)]})
        self.groups = [updated if g.id == group_id else g for g in self.groups]

    async def leave_group(self, group_id: str) -> None:
        self._call("leave_group", group_id)
        self.groups = [g for g in self.groups if g.id != group_id]

    async def list_group_expenses(self, group_id: str) -> list[Expense]:
        self._call("list_group_expenses", group_id)
        await self._wait_gate("list_group_expenses")
        if group_id in self.failing_groups:
            raise BackendError("Server error", status_code=500)
        return [e for e in self.expenses if e.group_id == group_id]

    async def create_expense(self, draft: ExpenseDraft) -> Expense:
        self._call("create_expense", draft)
        expense = Expense(
            id=f"exp-{next(self._ids)}",
            group_id=draft.group_id,
            description=draft.description,
            amount=draft.amount,
            currency=draft.currency,
            paid_by=draft.paid_by,
            split_type=draft.split_type,
            splits=draft.splits,
        )
        self.expenses.append(expense)
        return expense

    async def delete_expense(self, expense_id: str) -> None:
        self._call("delete_expense", expense_id)
        self.expenses = [e for e in self.expenses if e.id != expense_id]

    async def list_group_settlements(self, group_id: str) -> list[Settlement]:
        self._call("list_group_settlements", group_id)
        return [s for s in self.settlements if s.group_id == group_id]

    async def create_settlement(self, draft: SettlementDraft) -> Settlement:
        self._call("create_settlement", draft)
        settlement = Settlement(
            id=f"set-{next(self._ids)}",
            group_id=draft.group_id,
            from_member=draft.from_member,
            to_member=draft.to_member,
            amount=draft.amount,
            currency=draft.currency,
        )
        self.settlements.append(settlement)
        return settlement

    async def delete_settlement(self, settlement_id: str) -> None:
        self._call("delete_settlement", settlement_id)
        self.settlements = [s for s in self.settlements if s.id != settlement_id]

    async def list_friends(self) -> list[Friend]:
        self._call("list_friends")
        return list(self.friends)

    async def list_friend_requests(self) -> list[FriendRequest]:
        self._call("list_friend_requests")
        return list(self.friend_requests)

    async def delete_friend(self, friend_id: str) -> None:
        self._call("delete_friend", friend_id)
        self.friends = [f for f in self.friends if f.id != friend_id]

    async def send_friend_request(self, to_user_id: str) -> None:
        self._call("send_friend_request", to_user_id)
        self.friend_requests.append(FriendRequest(
            id=f"req-{next(self._ids)}", from_user="me", to_user=to_user_id
        ))

    async def accept_friend_request(self, request_id: str) -> None:
        self._call("accept_friend_request", request_id)
        for request in self.friend_requests:
            if request.id == request_id:
                self.friends.append(Friend(
                    id=f"fr-{next(self._ids)}",
                    friend_id=request.from_user,
                    display_name=request.from_user,
                ))
        self.friend_requests = [r for r in self.friend_requests if r.id != request_id]

    async def reject_friend_request(self, request_id: str) -> None:
        self._call("reject_friend_request", request_id)
        self.friend_requests = [r for r in self.friend_requests if r.id != request_id]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def credentials() -> InMemoryCredentialStore:
    return InMemoryCredentialStore("token-abc")


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def channel_settings() -> ChannelSettings:
    return ChannelSettings(
        url="http://channel.test",
        max_reconnect_attempts=5,
        reconnect_delay_seconds=1.0,
        backoff_strategy="fixed",
    )


@pytest.fixture
def manager(credentials, channel_settings, transport_factory, sleeper) -> ChannelConnectionManager:
    return ChannelConnectionManager(
        credentials,
        settings=channel_settings,
        transport_factory=transport_factory,
        audit_logger=AuditLogger("splitly.tests"),
        sleep=sleeper,
    )


@pytest.fixture
def backend() -> FakeBackend:
    backend = FakeBackend()
    backend.groups = [make_group("g1", ["a", "b", "c"], invite_code="JOIN-G1")]
    return backend


@pytest.fixture
def store(backend, manager) -> LedgerStore:
    return LedgerStore(backend, manager)
