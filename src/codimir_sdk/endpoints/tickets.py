from __future__ import annotations

from typing import List, Optional, Union
from urllib.parse import quote

from codimir_sdk.core.transport import Transport
from codimir_sdk.models import (
    CreateTicketInput,
    ListTicketsParams,
    Ticket,
    TicketPage,
    UpdateTicketInput,
)

TICKETS_PATH = "/api/v1/tickets"
GET_ALL_PAGE_SIZE = 100


def _ticket_path(ticket_id: str) -> str:
    if not ticket_id:
        raise ValueError("ticket_id must be provided.")
    return f"{TICKETS_PATH}/{quote(str(ticket_id), safe='')}"


def _as_params(params: Union[ListTicketsParams, dict, None]) -> ListTicketsParams:
    if params is None:
        return ListTicketsParams()
    if isinstance(params, ListTicketsParams):
        return params
    return ListTicketsParams.model_validate(params)


class TicketsApi:
    """Ticket endpoints. Thin: verb + path + body, typed result."""

    def __init__(self, transport: Transport):
        self.transport = transport

    async def create(self, data: Union[CreateTicketInput, dict]) -> Ticket:
        if isinstance(data, dict):
            data = CreateTicketInput.model_validate(data)
        return await self.transport.request_model(Ticket, "POST", TICKETS_PATH, data)

    async def get(self, ticket_id: str) -> Ticket:
        return await self.transport.request_model(
            Ticket, "GET", _ticket_path(ticket_id)
        )

    async def list(
        self, params: Union[ListTicketsParams, dict, None] = None
    ) -> TicketPage:
        query = _as_params(params).to_query()
        return await self.transport.request_model(
            TicketPage, "GET", TICKETS_PATH, params=query or None
        )

    async def update(
        self, ticket_id: str, data: Union[UpdateTicketInput, dict]
    ) -> Ticket:
        """Partial update (PATCH). Never retried automatically."""
        if isinstance(data, dict):
            data = UpdateTicketInput.model_validate(data)
        return await self.transport.request_model(
            Ticket, "PATCH", _ticket_path(ticket_id), data
        )

    async def replace(
        self, ticket_id: str, data: Union[CreateTicketInput, dict]
    ) -> Ticket:
        """Full replace (PUT). Safe to retry."""
        if isinstance(data, dict):
            data = CreateTicketInput.model_validate(data)
        return await self.transport.request_model(
            Ticket, "PUT", _ticket_path(ticket_id), data
        )

    async def remove(self, ticket_id: str) -> None:
        await self.transport.request("DELETE", _ticket_path(ticket_id))

    async def get_all(
        self, params: Union[ListTicketsParams, dict, None] = None
    ) -> List[Ticket]:
        """Follow nextCursor until exhausted. Use with care on big projects."""
        base = _as_params(params)
        tickets: List[Ticket] = []
        cursor: Optional[str] = None

        while True:
            page = await self.list(
                base.model_copy(update={"cursor": cursor, "limit": GET_ALL_PAGE_SIZE})
            )
            tickets.extend(page.items)
            if not page.next_cursor or page.next_cursor == cursor:
                return tickets
            cursor = page.next_cursor

    async def search(
        self, query: str, params: Union[ListTicketsParams, dict, None] = None
    ) -> TicketPage:
        return await self.list(_as_params(params).model_copy(update={"search": query}))


__all__ = ["TicketsApi", "TICKETS_PATH"]
