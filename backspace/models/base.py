from datetime import datetime, timezone
from typing import Annotated

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def new_id() -> str:
    return str(ObjectId())


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


class DocumentModel(BaseModel):
    """Base for every persisted entity. Repositories map `id` <-> `_id`."""
    id: str = Field(default_factory=new_id)

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )
