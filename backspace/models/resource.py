from enum import Enum
from typing import Optional

from pydantic import Field

from backspace.models.base import DocumentModel


class ResourceType(str, Enum):
    SEAT = "seat"
    ROOM = "room"
    DESK = "desk"


class Resource(DocumentModel):
    """
    A bookable seat, room or desk.

    `is_available` is owned by the session lifecycle: only session start
    (available -> occupied) and session close (occupied -> available) write it.
    """
    name: str
    resource_type: ResourceType = ResourceType.SEAT
    rate_per_hour: int = Field(..., ge=0)  # minor units
    max_price: Optional[int] = Field(default=None, ge=0)  # per-session cap, minor units
    is_available: bool = True
