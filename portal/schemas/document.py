"""Supporting document schemas."""

import enum
from datetime import datetime

from portal.schemas.common import BaseSchema, ScreenResponse


class DocumentStatus(str, enum.Enum):
    """Verification status of an uploaded document."""

    PENDING = "Pending Verification"
    VERIFIED = "Verified"
    REJECTED = "Rejected"
    SIGNED = "Signed"


class SlotState(str, enum.Enum):
    """Upload state of one document slot."""

    EMPTY = "empty"
    FILE_SELECTED = "file_selected"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"


class DocumentRecord(BaseSchema):
    """One stored file."""

    document_type: str
    file_name: str
    url: str
    status: DocumentStatus = DocumentStatus.PENDING
    uploaded_at: datetime
    signed_at: datetime | None = None


class SelectedFile(BaseSchema):
    """A file chosen for upload but not yet sent."""

    file_name: str
    content_type: str
    size: int
    content: bytes = b""


class DocumentSlotView(BaseSchema):
    """Client view of a document slot."""

    key: str
    label: str
    required: bool
    state: SlotState
    selected_file: str | None = None
    documents: list[DocumentRecord] = []


class AgreementView(BaseSchema):
    """Client view of a SETA or placement agreement."""

    key: str
    label: str
    available: bool
    company_name: str | None = None
    signed: bool = False
    signed_at: datetime | None = None


class DocumentProgress(BaseSchema):
    """Required document completion figures."""

    uploaded_count: int
    verified_count: int
    total_required: int
    complete: bool


class DocumentsResponse(ScreenResponse):
    """Documents screen response."""

    slots: list[DocumentSlotView] = []
    agreements: list[AgreementView] = []
    progress: DocumentProgress
    load_error: str | None = None
