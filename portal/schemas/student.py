"""Student record schemas."""

from typing import Any

from pydantic import ConfigDict, model_validator

from portal.schemas.common import BaseSchema


class StudentRecord(BaseSchema):
    """The authenticated student as held in the session.

    Keys follow the remote API's snake_case naming. Keys the API returns
    that are not declared here are kept as extras so a round trip through
    the session never drops data.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    id: int | str | None = None
    user_id: int | str | None = None

    # Personal
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    id_number: str | None = None

    # Biographical
    date_of_birth: str | None = None
    gender: str | None = None
    address: str | None = None

    # Academic (server-owned)
    student_number: str | None = None
    faculty: str | None = None
    programme: str | None = None
    registration_date: str | None = None
    status: str | None = None

    # Banking
    bank_name: str | None = None
    account_type: str | None = None
    account_number: str | None = None

    # Placement
    seta_allocation: Any = None
    placement: Any = None
    documents_complete: bool | None = False

    @model_validator(mode="after")
    def fill_identity(self) -> "StudentRecord":
        if self.user_id is None and self.id is not None:
            self.user_id = self.id
        if self.id is None and self.user_id is not None:
            self.id = self.user_id
        return self

    @property
    def record_id(self) -> int | str | None:
        """Identifier every write against this student targets."""
        return self.user_id if self.user_id is not None else self.id

    def merged(self, changes: dict[str, Any]) -> "StudentRecord":
        """Return a copy with server-returned fields applied.

        The identity is never replaced once assigned.
        """
        data = self.model_dump()
        for key, value in changes.items():
            if key in ("id", "user_id") and data.get(key) not in (None, ""):
                continue
            data[key] = value
        return StudentRecord.model_validate(data)
