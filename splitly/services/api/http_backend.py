"""
REST Backend Client

Implements LedgerBackend over the collaborator's JSON API using httpx.

DESIGN DECISION: Only reads are retried. A GET that hits a connection
failure is retried a few times with exponential backoff; a POST or DELETE
is never retried automatically, because the user must decide whether to
submit the same expense again.
"""

from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from splitly.config import ApiSettings, get_settings
from splitly.models.ledger import (
    Expense,
    ExpenseDraft,
    Friend,
    FriendRequest,
    Group,
    Settlement,
    SettlementDraft,
)
from splitly.services.api.interface import (
    AuthorizationError,
    BackendConnectionError,
    BackendError,
    LedgerBackend,
    NotFoundError,
    WireFormatError,
)
from splitly.services.api.wire import (
    expense_draft_to_wire,
    parse_expense,
    parse_friend,
    parse_friend_requests,
    parse_group,
    parse_settlement,
    settlement_draft_to_wire,
)
from splitly.services.auth import CredentialStore


retry_reads = retry(
    retry=retry_if_exception_type(BackendConnectionError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)


def _payload_list(payload: dict, key: str) -> list:
    items = payload.get(key) or []
    if not isinstance(items, list):
        raise WireFormatError(f"Expected a list under '{key}'")
    return items


class HttpLedgerBackend(LedgerBackend):
    """
    httpx implementation of the ledger backend.

    The bearer token is read from the credential store on every request, so
    signing in or out takes effect without rebuilding the client.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        settings: Optional[ApiSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._credentials = credentials
        self._settings = settings or get_settings().api
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        requires_auth: bool = True,
    ) -> dict[str, Any]:
        """
        Send one request and return the decoded JSON body.

        Raises:
            AuthorizationError: On 401/403
            NotFoundError: On 404
            BackendError: On any other non-2xx status
            BackendConnectionError: If the backend is unreachable
            WireFormatError: If a 2xx body is not a JSON object
        """
        headers = {"Content-Type": "application/json"}
        if requires_auth:
            token = await self._credentials.get_token()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, path, json=body, headers=headers)
        except httpx.TransportError as e:
            raise BackendConnectionError(f"Could not reach backend: {e}") from e

        if response.is_error:
            raise self._error_for(response)

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as e:
            raise WireFormatError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise WireFormatError(f"{method} {path} returned a non-object body")
        return payload

    @staticmethod
    def _error_for(response: httpx.Response) -> BackendError:
        try:
            message = response.json().get("error") or "Request failed"
        except (ValueError, AttributeError):
            message = "Request failed"

        status = response.status_code
        if status in (401, 403):
            return AuthorizationError(message, status_code=status)
        if status == 404:
            return NotFoundError(message, status_code=status)
        return BackendError(message, status_code=status)

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    @retry_reads
    async def list_groups(self) -> list[Group]:
        payload = await self._request("GET", "/groups")
        return [parse_group(g) for g in _payload_list(payload, "groups")]

    @retry_reads
    async def get_group(self, group_id: str) -> Group:
        payload = await self._request("GET", f"/groups/{group_id}")
        if "group" not in payload:
            raise WireFormatError("Group response is missing 'group'")
        return parse_group(payload["group"])

    async def create_group(
        self,
        name: str,
        currency: str,
        description: Optional[str] = None,
    ) -> Group:
        body = {"name": name, "currency": currency}
        if description is not None:
            body["description"] = description
        payload = await self._request("POST", "/groups", body)
        return parse_group(payload.get("group"))

    async def join_group(self, invite_code: str) -> Group:
        payload = await self._request("POST", "/groups/join", {"invite_code": invite_code})
        return parse_group(payload.get("group"))

    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Group:
        body = {
            key: value
            for key, value in (("name", name), ("description", description), ("currency", currency))
            if value is not None
        }
        payload = await self._request("PUT", f"/groups/{group_id}", body)
        return parse_group(payload.get("group"))

    async def delete_group(self, group_id: str) -> None:
        await self._request("DELETE", f"/groups/{group_id}")

    async def add_group_member(self, group_id: str, user_id: str) -> None:
        await self._request("POST", f"/groups/{group_id}/members", {"user_id": user_id})

    async def leave_group(self, group_id: str) -> None:
        await self._request("DELETE", f"/groups/{group_id}/leave")

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    @retry_reads
    async def list_group_expenses(self, group_id: str) -> list[Expense]:
        payload = await self._request("GET", f"/expenses/group/{group_id}")
        return [parse_expense(e) for e in _payload_list(payload, "expenses")]

    async def create_expense(self, draft: ExpenseDraft) -> Expense:
        payload = await self._request("POST", "/expenses", expense_draft_to_wire(draft))
        return parse_expense(payload.get("expense"))

    async def delete_expense(self, expense_id: str) -> None:
        await self._request("DELETE", f"/expenses/{expense_id}")

    # -------------------------------------------------------------------------
    # Settlements
    # -------------------------------------------------------------------------

    @retry_reads
    async def list_group_settlements(self, group_id: str) -> list[Settlement]:
        payload = await self._request("GET", f"/settlements/group/{group_id}")
        return [parse_settlement(s) for s in _payload_list(payload, "settlements")]

    async def create_settlement(self, draft: SettlementDraft) -> Settlement:
        payload = await self._request("POST", "/settlements", settlement_draft_to_wire(draft))
        return parse_settlement(payload.get("settlement"))

    async def delete_settlement(self, settlement_id: str) -> None:
        await self._request("DELETE", f"/settlements/{settlement_id}")

    # -------------------------------------------------------------------------
    # Social
    # -------------------------------------------------------------------------

    @retry_reads
    async def list_friends(self) -> list[Friend]:
        payload = await self._request("GET", "/friends")
        return [parse_friend(f) for f in _payload_list(payload, "friends")]

    @retry_reads
    async def list_friend_requests(self) -> list[FriendRequest]:
        payload = await self._request("GET", "/friend-requests")
        return parse_friend_requests(payload)

    async def delete_friend(self, friend_id: str) -> None:
        await self._request("DELETE", f"/friends/{friend_id}")

    async def send_friend_request(self, to_user_id: str) -> None:
        await self._request("POST", "/friend-requests", {"to_user_id": to_user_id})

    async def accept_friend_request(self, request_id: str) -> None:
        await self._request("PUT", f"/friend-requests/{request_id}/accept")

    async def reject_friend_request(self, request_id: str) -> None:
        await self._request("PUT", f"/friend-requests/{request_id}/reject")
