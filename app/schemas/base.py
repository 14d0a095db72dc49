from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split('_')
    return components[0] + ''.join(x.title() for x in components[1:])


def to_local_naive(value: datetime) -> datetime:
    """Dates are stored as local wall-clock time; aware values are converted, naive ones kept."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class CamelModel(BaseModel):
    """Request body accepting both camelCase and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def convert_datetimes(cls, value):
        if isinstance(value, datetime):
            return to_local_naive(value)
        return value
