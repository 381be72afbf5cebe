"""
Ledger Store

The client-side state container for one signed-in session. It caches
groups, expenses, settlements and the social lists, keeps them in step with
the backend, and derives balances and suggested transfers on demand.

Two ways data enters the cache:
1. Full reload (load_data): every array replaced wholesale from REST
2. Channel events (apply): typed records merged by id

DESIGN DECISION: Writes are NEVER applied speculatively. add_expense and
friends call the backend and return its record; the cache changes only
when the backend's own ``expense-added`` event comes back over the channel
(or on the next reload). Because the same record can arrive both ways,
apply() is idempotent: adding a known id or deleting an unknown one is a
no-op.

DESIGN DECISION: When an inbound event cannot be parsed, the store does a
full reload instead of guessing at a partial merge.

DESIGN DECISION: stop() starts a new session. Reloads and group writes
still in flight from the previous session drop their results instead of
repopulating the cache or the room tracker after sign-out.
"""

import asyncio
import time
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Optional
from uuid import UUID

from splitly.audit import AuditLogger, create_correlation_id
from splitly.channel.events import parse_channel_event
from splitly.channel.manager import ChannelConnectionManager
from splitly.ledger import compute_balances, simplify_debts
from splitly.models.audit import AuditEventBuilder
from splitly.models.events import (
    INBOUND_EVENT_NAMES,
    ChannelEvent,
    ExpenseAdded,
    ExpenseDeleted,
    FriendRemoved,
    FriendRequestAccepted,
    FriendRequestReceived,
    SettlementAdded,
    SettlementDeleted,
)
from splitly.models.ledger import (
    Balance,
    Expense,
    ExpenseDraft,
    Friend,
    FriendRequest,
    Group,
    Settlement,
    SettlementDraft,
    SimplifiedDebt,
)
from splitly.services.api import BackendError, LedgerBackend, WireFormatError
from splitly.validation import (
    ExpenseValidator,
    LedgerValidationError,
    SettlementValidator,
    ValidationResult,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


class LedgerStore:
    """
    Cache of one user's ledger, fed by REST reloads and channel events.

    Usage:
        store = LedgerStore(backend, channel)
        await store.start(user_id)
        debts = store.simplified_debts(group_id)
        await store.stop()
    """

    def __init__(
        self,
        backend: LedgerBackend,
        channel: ChannelConnectionManager,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        """
        Args:
            backend: REST collaborator
            channel: Connection manager used for rooms and event listeners
            audit_logger: Structured event log (defaults to the channel's)
            clock: Millisecond wall clock used for ``last_updated``
        """
        self._backend = backend
        self._channel = channel
        self._audit_logger = audit_logger or channel.audit_logger
        self._clock = clock

        self._user_id: Optional[str] = None
        self._groups: list[Group] = []
        self._expenses: list[Expense] = []
        self._settlements: list[Settlement] = []
        self._friends: list[Friend] = []
        self._friend_requests: list[FriendRequest] = []
        self._last_updated = clock()
        self._is_loading = False
        self._applied_during_reload: list[ChannelEvent] = []
        # Bumped by stop(); work started under an older value discards its results.
        self._session = 0

        self._handlers: dict[str, Callable[[Any], Any]] = {}

    # -------------------------------------------------------------------------
    # Cached state
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def groups(self) -> list[Group]:
        return list(self._groups)

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def settlements(self) -> list[Settlement]:
        return list(self._settlements)

    @property
    def friends(self) -> list[Friend]:
        return list(self._friends)

    @property
    def friend_requests(self) -> list[FriendRequest]:
        return list(self._friend_requests)

    @property
    def last_updated(self) -> int:
        """Millisecond stamp, strictly increasing on every cache change."""
        return self._last_updated

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def get_group(self, group_id: str) -> Optional[Group]:
        for group in self._groups:
            if group.id == group_id:
                return group
        return None

    def _touch(self) -> None:
        self._last_updated = max(self._last_updated + 1, self._clock())

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, user_id: str) -> None:
        """Subscribe to channel events and load everything for ``user_id``."""
        self._user_id = user_id
        self._subscribe()
        await self.load_data()

    async def stop(self) -> None:
        """Unsubscribe and drop every cached record."""
        self._unsubscribe()
        self._session += 1
        self._applied_during_reload = []
        self._is_loading = False
        self._user_id = None
        self._groups = []
        self._expenses = []
        self._settlements = []
        self._friends = []
        self._friend_requests = []
        self._touch()

    def _subscribe(self) -> None:
        if self._handlers:
            return
        for event_name in INBOUND_EVENT_NAMES:
            handler = partial(self._on_channel_event, event_name)
            self._handlers[event_name] = handler
            self._channel.on(event_name, handler)

    def _unsubscribe(self) -> None:
        for event_name, handler in self._handlers.items():
            self._channel.off(event_name, handler)
        self._handlers = {}

    # -------------------------------------------------------------------------
    # Reloads
    # -------------------------------------------------------------------------

    async def load_data(self) -> bool:
        """
        Replace the whole cache from the backend.

        Groups are fetched first and their rooms joined (rooms of groups the
        user no longer belongs to are left). Expenses and settlements are
        fetched per group concurrently; a group that fails is logged and
        skipped. Friend requests are optional: failing to load them does not
        fail the reload.

        Events applied while the reload is in flight are merged again on top
        of the fetched snapshot, so a broadcast that lands mid-reload is not
        lost. If stop() runs before the reload finishes, its results are
        dropped.

        Returns:
            True if the reload completed, False if it was abandoned. Errors
            are logged, not raised, since reloads also run from event handlers.
        """
        if not self._user_id:
            return False

        session = self._session
        self._is_loading = True
        self._applied_during_reload = []
        try:
            try:
                groups = await self._backend.list_groups()
            except BackendError as e:
                self._audit_logger.log(AuditEventBuilder.ledger_reload_failed(str(e)))
                return False
            if session != self._session:
                return False
            self._groups = groups
            if not await self._sync_rooms(session):
                return False

            results = await asyncio.gather(*(self._load_group(group) for group in groups))
            if session != self._session:
                return False
            expenses: list[Expense] = []
            settlements: list[Settlement] = []
            for loaded in results:
                if loaded is None:
                    continue
                expenses.extend(loaded[0])
                settlements.extend(loaded[1])
            self._expenses = expenses
            self._settlements = settlements
            self._merge_applied_during_reload()

            try:
                friends = await self._backend.list_friends()
            except BackendError as e:
                self._audit_logger.log(AuditEventBuilder.ledger_reload_failed(str(e)))
                return False
            if session != self._session:
                return False
            self._friends = friends

            try:
                friend_requests = await self._backend.list_friend_requests()
            except BackendError as e:
                self._audit_logger.log_error("list_friend_requests", str(e))
                friend_requests = None
            if session != self._session:
                return False
            if friend_requests is not None:
                self._friend_requests = friend_requests
            self._merge_applied_during_reload()

            self._touch()
            self._audit_logger.log(AuditEventBuilder.ledger_reloaded(
                len(groups), len(self._expenses), len(self._settlements)
            ))
            return True
        finally:
            if session == self._session:
                self._is_loading = False
                self._applied_during_reload = []

    async def _load_group(self, group: Group) -> Optional[tuple[list[Expense], list[Settlement]]]:
        try:
            expenses, settlements = await asyncio.gather(
                self._backend.list_group_expenses(group.id),
                self._backend.list_group_settlements(group.id),
            )
        except BackendError as e:
            self._audit_logger.log(AuditEventBuilder.group_load_failed(group.id, str(e)))
            return None
        return expenses, settlements

    async def _sync_rooms(self, session: int) -> bool:
        """Leave rooms of groups we no longer belong to and join the rest."""
        current = {group.id for group in self._groups}
        for group_id in self._channel.rooms.rooms:
            if session != self._session:
                return False
            if group_id not in current:
                await self._channel.leave_group(group_id)
        for group in self._groups:
            if session != self._session:
                return False
            await self._channel.join_group(group.id)
        return session == self._session

    def _merge_applied_during_reload(self) -> None:
        for event in self._applied_during_reload:
            self._merge(event)

    async def refresh_groups(self) -> bool:
        """Reload the group list only. Errors are logged, not raised."""
        session = self._session
        try:
            groups = await self._backend.list_groups()
        except BackendError as e:
            self._audit_logger.log_error("list_groups", str(e))
            return False
        if session != self._session:
            return False
        self._groups = groups
        self._touch()
        return True

    async def _reload_friends(self) -> None:
        session = self._session
        try:
            friends = await self._backend.list_friends()
        except BackendError as e:
            self._audit_logger.log_error("list_friends", str(e))
            return
        if session != self._session:
            return
        self._friends = friends
        self._touch()

    async def _reload_friend_requests(self) -> None:
        session = self._session
        try:
            friend_requests = await self._backend.list_friend_requests()
        except BackendError as e:
            self._audit_logger.log_error("list_friend_requests", str(e))
            return
        if session != self._session:
            return
        self._friend_requests = friend_requests
        self._touch()

    # -------------------------------------------------------------------------
    # Channel events
    # -------------------------------------------------------------------------

    async def _on_channel_event(self, event_name: str, payload: Any) -> None:
        try:
            event = parse_channel_event(event_name, payload)
        except WireFormatError as e:
            self._audit_logger.log(AuditEventBuilder.event_unparseable(event_name, str(e)))
            await self.load_data()
            return

        self.apply(event)
        if isinstance(event, FriendRequestAccepted):
            await self._reload_friends()

    def apply(self, event: ChannelEvent) -> bool:
        """
        Merge one typed channel event into the cache.

        Returns:
            True if the cache changed. Re-applying an event returns False.
        """
        changed, entity_id = self._merge(event)
        if self._is_loading:
            self._applied_during_reload.append(event)

        if changed:
            self._touch()
            self._audit_logger.log(AuditEventBuilder.event_applied(event.event_name, entity_id))
        else:
            self._audit_logger.log(AuditEventBuilder.event_ignored(event.event_name, entity_id))
        return changed

    def _merge(self, event: ChannelEvent) -> tuple[bool, str]:
        if isinstance(event, ExpenseAdded):
            entity_id = event.expense.id
            changed = not any(e.id == entity_id for e in self._expenses)
            if changed:
                self._expenses = self._expenses + [event.expense]
        elif isinstance(event, ExpenseDeleted):
            entity_id = event.id
            remaining = [e for e in self._expenses if e.id != entity_id]
            changed = len(remaining) != len(self._expenses)
            self._expenses = remaining
        elif isinstance(event, SettlementAdded):
            entity_id = event.settlement.id
            changed = not any(s.id == entity_id for s in self._settlements)
            if changed:
                self._settlements = self._settlements + [event.settlement]
        elif isinstance(event, SettlementDeleted):
            entity_id = event.id
            remaining = [s for s in self._settlements if s.id != entity_id]
            changed = len(remaining) != len(self._settlements)
            self._settlements = remaining
        elif isinstance(event, FriendRequestReceived):
            entity_id = event.request.id
            changed = not any(r.id == entity_id for r in self._friend_requests)
            if changed:
                self._friend_requests = self._friend_requests + [event.request]
        elif isinstance(event, FriendRequestAccepted):
            entity_id = event.request_id
            remaining = [r for r in self._friend_requests if r.id != entity_id]
            changed = len(remaining) != len(self._friend_requests)
            self._friend_requests = remaining
        elif isinstance(event, FriendRemoved):
            entity_id = event.friend_user_id
            remaining = [f for f in self._friends if f.friend_id != entity_id]
            changed = len(remaining) != len(self._friends)
            self._friends = remaining
        else:
            raise TypeError(f"Not a channel event: {type(event).__name__}")
        return changed, entity_id

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _reject(self, entity_type: str, result: ValidationResult, correlation_id: UUID) -> None:
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
        ]
        self._audit_logger.log(AuditEventBuilder.validation_rejected(
            entity_type, issues, correlation_id
        ))
        raise LedgerValidationError(result)

    async def add_expense(self, draft: ExpenseDraft) -> Expense:
        """
        Validate and submit a new expense.

        The cache is not touched; the expense shows up when the backend's
        ``expense-added`` event arrives.

        Raises:
            LedgerValidationError: If the draft is invalid (nothing is sent)
            BackendError: If the backend rejects the expense
        """
        correlation_id = create_correlation_id()
        group = self.get_group(draft.group_id)
        member_ids = group.member_ids if group is not None and group.members else None

        result = ExpenseValidator(member_ids).validate(draft)
        if not result.is_valid:
            self._reject("expense", result, correlation_id)

        try:
            expense = await self._backend.create_expense(draft)
        except BackendError as e:
            self._audit_logger.log_error("create_expense", str(e), correlation_id)
            raise

        self._touch()
        self._audit_logger.log(AuditEventBuilder.expense_submitted(
            expense.id, expense.group_id, str(expense.amount), correlation_id
        ))
        return expense

    async def delete_expense(self, expense_id: str) -> None:
        correlation_id = create_correlation_id()
        try:
            await self._backend.delete_expense(expense_id)
        except BackendError as e:
            self._audit_logger.log_error("delete_expense", str(e), correlation_id)
            raise
        self._touch()
        self._audit_logger.log(AuditEventBuilder.record_deleted("expense", expense_id, correlation_id))

    async def add_settlement(self, draft: SettlementDraft) -> Settlement:
        """
        Validate and record a settlement.

        Raises:
            LedgerValidationError: If the draft is invalid (nothing is sent)
            BackendError: If the backend rejects the settlement
        """
        correlation_id = create_correlation_id()
        result = SettlementValidator().validate(draft)
        if not result.is_valid:
            self._reject("settlement", result, correlation_id)

        try:
            settlement = await self._backend.create_settlement(draft)
        except BackendError as e:
            self._audit_logger.log_error("create_settlement", str(e), correlation_id)
            raise

        self._touch()
        self._audit_logger.log(AuditEventBuilder.settlement_submitted(
            settlement.id, settlement.group_id, str(settlement.amount), correlation_id
        ))
        return settlement

    async def delete_settlement(self, settlement_id: str) -> None:
        correlation_id = create_correlation_id()
        try:
            await self._backend.delete_settlement(settlement_id)
        except BackendError as e:
            self._audit_logger.log_error("delete_settlement", str(e), correlation_id)
            raise
        self._touch()
        self._audit_logger.log(AuditEventBuilder.record_deleted(
            "settlement", settlement_id, correlation_id
        ))

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    async def create_group(
        self,
        name: str,
        currency: str = "USD",
        description: Optional[str] = None,
    ) -> Group:
        session = self._session
        try:
            group = await self._backend.create_group(name, currency, description)
        except BackendError as e:
            self._audit_logger.log_error("create_group", str(e))
            raise
        await self.refresh_groups()
        if session == self._session:
            await self._channel.join_group(group.id)
        return group

    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Group:
        """Change a group's name, description or currency; omitted fields are kept."""
        try:
            group = await self._backend.update_group(group_id, name, description, currency)
        except BackendError as e:
            self._audit_logger.log_error("update_group", str(e))
            raise
        await self.refresh_groups()
        return group

    async def delete_group(self, group_id: str) -> None:
        """Delete a group on the backend and forget it locally."""
        try:
            await self._backend.delete_group(group_id)
        except BackendError as e:
            self._audit_logger.log_error("delete_group", str(e))
            raise
        await self._forget_group(group_id)

    async def add_member_to_group(self, group_id: str, user_id: str) -> None:
        try:
            await self._backend.add_group_member(group_id, user_id)
        except BackendError as e:
            self._audit_logger.log_error("add_group_member", str(e))
            raise
        await self.refresh_groups()

    async def join_group_by_code(self, invite_code: str) -> Group:
        """
        Join a group with an invite code and start observing its room.

        Raises:
            NotFoundError: If no group has that code
        """
        session = self._session
        try:
            group = await self._backend.join_group(invite_code)
        except BackendError as e:
            self._audit_logger.log_error("join_group", str(e))
            raise
        await self.refresh_groups()
        if session == self._session:
            await self._channel.join_group(group.id)
        return group

    async def leave_group(self, group_id: str) -> None:
        """Leave a group and drop its records from the cache."""
        try:
            await self._backend.leave_group(group_id)
        except BackendError as e:
            self._audit_logger.log_error("leave_group", str(e))
            raise
        await self._forget_group(group_id)

    async def _forget_group(self, group_id: str) -> None:
        await self._channel.leave_group(group_id)
        self._expenses = [e for e in self._expenses if e.group_id != group_id]
        self._settlements = [s for s in self._settlements if s.group_id != group_id]
        await self.refresh_groups()

    # -------------------------------------------------------------------------
    # Social
    # -------------------------------------------------------------------------

    async def send_friend_request(self, to_user_id: str) -> None:
        try:
            await self._backend.send_friend_request(to_user_id)
        except BackendError as e:
            self._audit_logger.log_error("send_friend_request", str(e))
            raise
        await self._reload_friend_requests()

    async def accept_friend_request(self, request_id: str) -> None:
        """Accept a request; both the friend list and the request list are reloaded."""
        try:
            await self._backend.accept_friend_request(request_id)
        except BackendError as e:
            self._audit_logger.log_error("accept_friend_request", str(e))
            raise
        await asyncio.gather(self._reload_friends(), self._reload_friend_requests())

    async def reject_friend_request(self, request_id: str) -> None:
        try:
            await self._backend.reject_friend_request(request_id)
        except BackendError as e:
            self._audit_logger.log_error("reject_friend_request", str(e))
            raise
        await self._reload_friend_requests()

    async def delete_friend(self, friend_id: str) -> None:
        try:
            await self._backend.delete_friend(friend_id)
        except BackendError as e:
            self._audit_logger.log_error("delete_friend", str(e))
            raise
        await self._reload_friends()

    # -------------------------------------------------------------------------
    # Derived views (recomputed on every call)
    # -------------------------------------------------------------------------

    def group_expenses(self, group_id: str) -> list[Expense]:
        return [e for e in self._expenses if e.group_id == group_id]

    def group_settlements(self, group_id: str) -> list[Settlement]:
        return [s for s in self._settlements if s.group_id == group_id]

    def balances(self, group_id: str) -> list[Balance]:
        """Net balance of every member of ``group_id``."""
        group = self.get_group(group_id)
        members = group.members if group is not None else ()
        return compute_balances(
            self.group_expenses(group_id),
            members,
            self.group_settlements(group_id),
        )

    def simplified_debts(self, group_id: str) -> list[SimplifiedDebt]:
        return simplify_debts(self.balances(group_id))

    def member_net_balance(self, member_id: str) -> Decimal:
        """A member's net position summed over every cached group."""
        total = Decimal("0.00")
        for group in self._groups:
            for balance in self.balances(group.id):
                if balance.member_id == member_id:
                    total += balance.amount
        return total
