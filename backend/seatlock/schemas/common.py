"""
Shared pydantic base: camelCase on the wire, snake_case in Python.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes (client input, SQLite reads) are taken as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


class SuccessResponse(CamelModel):
    success: bool = True
