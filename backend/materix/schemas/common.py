"""Shared schema pieces."""
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel

from materix.time_range import as_utc

# SQLite hands back naive datetimes; everything leaving the API is UTC-aware.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class MessageOut(BaseModel):
    message: str
