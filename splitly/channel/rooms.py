"""
Room Membership Tracker

Remembers which group rooms the client wants to observe, independently of
whether a transport currently exists. UI code can ask to join a group before
sign-in finishes; the intent is kept and replayed on the next connect.
"""

from typing import TYPE_CHECKING

from splitly.models.audit import AuditEventBuilder
from splitly.models.events import JOIN_GROUP, LEAVE_GROUP

if TYPE_CHECKING:
    from splitly.channel.manager import ChannelConnectionManager


class RoomMembershipTracker:
    """Ordered set of joined group ids."""

    def __init__(self, manager: "ChannelConnectionManager"):
        self._manager = manager
        self._rooms: dict[str, None] = {}

    @property
    def rooms(self) -> list[str]:
        return list(self._rooms)

    def __contains__(self, group_id: str) -> bool:
        return group_id in self._rooms

    async def join_group(self, group_id: str) -> None:
        """
        Track ``group_id``; emit ``join-group`` right away when connected.

        Joining an already tracked group is a no-op.
        """
        if group_id in self._rooms:
            return
        self._rooms[group_id] = None
        emitted = await self._emit_if_connected(JOIN_GROUP, group_id)
        self._manager.audit_logger.log(AuditEventBuilder.room_changed(group_id, True, emitted))

    async def leave_group(self, group_id: str) -> None:
        if group_id not in self._rooms:
            return
        del self._rooms[group_id]
        emitted = await self._emit_if_connected(LEAVE_GROUP, group_id)
        self._manager.audit_logger.log(AuditEventBuilder.room_changed(group_id, False, emitted))

    async def replay(self) -> int:
        """Re-emit ``join-group`` for every tracked room. Returns how many were sent."""
        replayed = 0
        for group_id in list(self._rooms):
            # A leave may land while an earlier join is in flight.
            if group_id not in self._rooms:
                continue
            await self._manager.emit(JOIN_GROUP, group_id)
            replayed += 1
        return replayed

    def clear(self) -> None:
        self._rooms.clear()

    async def _emit_if_connected(self, event: str, group_id: str) -> bool:
        if not self._manager.is_connected:
            return False
        await self._manager.emit(event, group_id)
        return True
