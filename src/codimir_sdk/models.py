from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

TicketStatus = Literal["open", "in-progress", "review", "closed"]
TicketPriority = Literal["low", "medium", "high", "critical"]


class ApiModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- Tickets ---


class Ticket(ApiModel):
    id: str
    title: str
    description: str = ""
    status: TicketStatus = "open"
    priority: TicketPriority = "medium"
    assignee: str = ""
    reporter: str = ""
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    labels: List[str] = Field(default_factory=list)
    sprint: Optional[str] = None
    comments: int = 0
    linked_prs: int = Field(default=0, alias="linkedPRs")


class CreateTicketInput(ApiModel):
    title: str
    description: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    labels: Optional[List[str]] = None
    sprint: Optional[str] = None


class UpdateTicketInput(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    labels: Optional[List[str]] = None
    sprint: Optional[str] = None


class ListTicketsParams(ApiModel):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    cursor: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assignee: Optional[str] = None
    search: Optional[str] = None

    def to_query(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TicketPage(ApiModel):
    items: List[Ticket] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")
    total: Optional[int] = None


# --- Real-time events ---


class EventParseError(ValueError):
    """Raised when an event frame cannot be turned into an Event."""


class BaseEvent(ApiModel):
    type: str
    timestamp: Optional[str] = None


class ConnectionEvent(BaseEvent):
    type: Literal["connected"] = "connected"
    message: str = ""
    user_id: Optional[str] = Field(default=None, alias="userId")


class HeartbeatEvent(BaseEvent):
    type: Literal["heartbeat"] = "heartbeat"


class EntityChange(ApiModel):
    entity: str
    entity_id: str = Field(alias="entityId")
    changes: List[str] = Field(default_factory=list)
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    timestamp: Optional[str] = None


class EntityUpdatedEvent(BaseEvent):
    type: Literal["entity_updated"] = "entity_updated"
    data: EntityChange


class TicketChange(ApiModel):
    ticket_id: str = Field(alias="ticketId")
    changes: List[str] = Field(default_factory=list)
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    timestamp: Optional[str] = None


class TicketUpdatedEvent(BaseEvent):
    type: Literal["ticket_updated"] = "ticket_updated"
    data: TicketChange


class GenericEvent(BaseEvent):
    """Any event type this SDK version does not know; extra keys are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


Event = Union[
    ConnectionEvent,
    HeartbeatEvent,
    EntityUpdatedEvent,
    TicketUpdatedEvent,
    GenericEvent,
]

EVENT_MODELS: Dict[str, Type[BaseEvent]] = {
    "connected": ConnectionEvent,
    "heartbeat": HeartbeatEvent,
    "entity_updated": EntityUpdatedEvent,
    "ticket_updated": TicketUpdatedEvent,
}


def parse_event(payload: Any) -> Event:
    if not isinstance(payload, dict):
        raise EventParseError(
            f"Expected a JSON object event, got {type(payload).__name__}"
        )
    event_type = payload.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise EventParseError("Event is missing a string 'type'")

    model = EVENT_MODELS.get(event_type, GenericEvent)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise EventParseError(f"Invalid {event_type!r} event: {exc}") from exc


__all__ = [
    "TicketStatus",
    "TicketPriority",
    "Ticket",
    "CreateTicketInput",
    "UpdateTicketInput",
    "ListTicketsParams",
    "TicketPage",
    "EventParseError",
    "BaseEvent",
    "ConnectionEvent",
    "HeartbeatEvent",
    "EntityChange",
    "EntityUpdatedEvent",
    "TicketChange",
    "TicketUpdatedEvent",
    "GenericEvent",
    "Event",
    "EVENT_MODELS",
    "parse_event",
]
