"""Data-entry screen schemas."""

from pydantic import Field

from portal.schemas.common import BaseSchema, ScreenResponse


class RecordEdits(BaseSchema):
    """Fields changed on a data-entry form, keyed by form field name."""

    fields: dict[str, str | int | float | None] = Field(default_factory=dict)


class RecordScreenResponse(ScreenResponse):
    """State of a data-entry form after a load or save."""

    record: str
    form: dict[str, str]
    errors: dict[str, str] = {}
    exists: bool = False
    loading: bool = False
    load_error: str | None = None
    read_only: bool = False
