"""Supporting document uploads.

Each document type is a slot that moves through
``EMPTY -> FILE_SELECTED -> UPLOADING -> UPLOADED``. A slot that already
holds documents accepts further uploads; its list only ever grows.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from portal.core.config import Settings, settings
from portal.core.exceptions import (
    InvalidResponseError,
    NotFoundError,
    RemoteAPIError,
    RemoteTransportError,
)
from portal.schemas.document import (
    AgreementView,
    DocumentProgress,
    DocumentRecord,
    DocumentSlotView,
    DocumentStatus,
    SelectedFile,
    SlotState,
)
from portal.services.notification import Reporter, null_reporter
from portal.services.remote_api import ProfileApiClient
from portal.services.session_store import SessionStore

logger = logging.getLogger(__name__)

SIGNED_AGREEMENTS_KEY = "signed_agreements"

REQUIRED_DOCUMENTS: list[tuple[str, str]] = [
    ("idDocument", "ID Document / Passport"),
    ("proofOfResidence", "Proof of Residence"),
    ("academicTranscript", "Academic Transcript"),
    ("cv", "Curriculum Vitae (CV)"),
    ("bankStatement", "Bank Statement"),
]

# (key, label, student attribute, company name keys)
AGREEMENTS: list[tuple[str, str, str, tuple[str, ...]]] = [
    ("setaAgreement", "SETA Agreement", "seta_allocation", ("setaName", "seta_name")),
    ("placementAgreement", "Placement Agreement", "placement", ("companyName", "company_name")),
]


def _file_name(url: str) -> str:
    return url.rstrip("/").split("/")[-1]


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def _parse_status(value: Any) -> DocumentStatus:
    for status in DocumentStatus:
        if isinstance(value, str) and value.lower() in (status.value.lower(), status.name.lower()):
            return status
    return DocumentStatus.PENDING


class DocumentSlot:
    """Upload state for one document type."""

    def __init__(self, key: str, label: str, required: bool = True):
        self.key = key
        self.label = label
        self.required = required
        self.state = SlotState.EMPTY
        self.selected: SelectedFile | None = None
        self.documents: list[DocumentRecord] = []

    def _resting_state(self) -> SlotState:
        return SlotState.UPLOADED if self.documents else SlotState.EMPTY

    def rejection_reason(self, file: SelectedFile, config: Settings = settings) -> str | None:
        """Why ``file`` may not be uploaded, or None when it is acceptable."""
        if file.size > config.max_upload_size_bytes:
            return f"File size must be less than {config.MAX_UPLOAD_SIZE_MB}MB"
        extension = os.path.splitext(file.file_name)[1].lower()
        content_type = (file.content_type or "").split(";")[0].strip().lower()
        if (
            content_type not in config.ALLOWED_UPLOAD_CONTENT_TYPES
            or extension not in config.ALLOWED_UPLOAD_EXTENSIONS
        ):
            return "Only PDF, JPG, and PNG files are allowed"
        return None

    def select(self, file: SelectedFile, config: Settings = settings) -> str | None:
        """Select a file. Returns the rejection reason, state untouched, on failure."""
        if self.state == SlotState.UPLOADING:
            return "An upload is already in progress"
        reason = self.rejection_reason(file, config)
        if reason:
            return reason
        self.selected = file
        self.state = SlotState.FILE_SELECTED
        return None

    def cancel(self) -> None:
        if self.state == SlotState.UPLOADING:
            return
        self.selected = None
        self.state = self._resting_state()

    def begin_upload(self) -> SelectedFile:
        if self.selected is None or self.state == SlotState.UPLOADING:
            raise ValueError(f"No file selected for {self.key}")
        self.state = SlotState.UPLOADING
        return self.selected

    def complete_upload(self, records: list[DocumentRecord]) -> None:
        self.documents.extend(records)
        self.selected = None
        self.state = SlotState.UPLOADED

    def fail_upload(self) -> None:
        # The selection is kept so the student can retry.
        self.state = self._resting_state()

    def add_existing(self, record: DocumentRecord) -> None:
        self.documents.append(record)
        if self.state == SlotState.EMPTY:
            self.state = SlotState.UPLOADED

    def view(self) -> DocumentSlotView:
        return DocumentSlotView(
            key=self.key,
            label=self.label,
            required=self.required,
            state=self.state,
            selected_file=self.selected.file_name if self.selected else None,
            documents=list(self.documents),
        )


class DocumentUploadController:
    """Documents screen: required uploads, progress and agreements."""

    def __init__(
        self,
        api: ProfileApiClient,
        store: SessionStore,
        reporter: Reporter | None = None,
        config: Settings = settings,
    ):
        self.api = api
        self.store = store
        self.reporter = reporter or null_reporter
        self.config = config
        self.record_id: int | str | None = None
        self.load_error: str | None = None
        self.slots: dict[str, DocumentSlot] = {
            key: DocumentSlot(key, label) for key, label in REQUIRED_DOCUMENTS
        }
        for key, signed_at in self._signed_agreements().items():
            self._record_signature(key, _parse_timestamp(signed_at))

    def slot(self, key: str, create: bool = False) -> DocumentSlot:
        if key not in self.slots:
            if not create:
                raise NotFoundError("Document type", key)
            self.slots[key] = DocumentSlot(key, key, required=False)
        return self.slots[key]

    async def load(self, record_id: int | str | None) -> None:
        """Fetch stored documents and group them by type in upload order."""
        if record_id is None or record_id == "":
            return
        self.record_id = record_id
        try:
            data = await self.api.get_documents(record_id)
        except RemoteAPIError as e:
            if e.status_code != 404:
                logger.warning(f"Failed to load documents for user {record_id}: {e}")
                self.load_error = "Failed to load documents"
            return

        documents = data.get("documents", []) if isinstance(data, dict) else []
        for doc in documents or []:
            if not isinstance(doc, dict):
                continue
            url = doc.get("document") or doc.get("url")
            doc_type = doc.get("doc_type") or doc.get("document_type")
            if not url or not doc_type:
                continue
            self.slot(doc_type, create=True).add_existing(
                DocumentRecord(
                    document_type=doc_type,
                    file_name=_file_name(url),
                    url=url,
                    status=_parse_status(doc.get("status")),
                    uploaded_at=_parse_timestamp(doc.get("uploaded_at") or doc.get("created_at")),
                )
            )

    def select(self, key: str, file: SelectedFile) -> bool:
        """Select a file for a slot; invalid files never reach the server."""
        reason = self.slot(key).select(file, self.config)
        if reason:
            logger.info(f"Rejected {file.file_name} for {key}: {reason}")
            self.reporter(reason, "error")
            return False
        return True

    def cancel(self, key: str) -> None:
        self.slot(key).cancel()

    async def upload(self, key: str) -> bool:
        """Send the selected file for ``key``. Returns True on success."""
        slot = self.slot(key)
        if slot.selected is None or slot.state == SlotState.UPLOADING:
            return False
        if self.record_id is None:
            self.reporter("Your session has no student record. Please log in again.", "error")
            return False

        file = slot.begin_upload()
        try:
            data = await self.api.upload_supporting_document(
                self.record_id,
                key,
                file.file_name,
                file.content,
                file.content_type,
            )
        except InvalidResponseError:
            slot.fail_upload()
            self.reporter("Upload failed: invalid server response", "error")
            return False
        except RemoteTransportError:
            slot.fail_upload()
            self.reporter("Error uploading document. Try again.", "error")
            return False
        except RemoteAPIError as e:
            slot.fail_upload()
            self.reporter(e.message or "Upload failed", "error")
            return False

        urls = data.get("files") if isinstance(data, dict) else None
        if not isinstance(urls, list) or not urls:
            slot.fail_upload()
            self.reporter("Upload failed: invalid server response", "error")
            return False

        now = datetime.now(timezone.utc)
        slot.complete_upload(
            [
                DocumentRecord(
                    document_type=key,
                    file_name=_file_name(url),
                    url=url,
                    status=DocumentStatus.PENDING,
                    uploaded_at=now,
                )
                for url in urls
            ]
        )
        count = data.get("uploaded_count") or len(urls)
        logger.info(f"Uploaded {count} document(s) for {key} (user {self.record_id})")
        self.reporter(f"Uploaded {count} document(s) for {key}", "success")
        return True

    # Agreements

    def _signed_agreements(self) -> dict[str, str]:
        raw = self.store.get(SIGNED_AGREEMENTS_KEY)
        if not raw:
            return {}
        try:
            signed = json.loads(raw)
        except ValueError:
            return {}
        return signed if isinstance(signed, dict) else {}

    def _record_signature(self, key: str, signed_at: datetime) -> None:
        label = next((a[1] for a in AGREEMENTS if a[0] == key), key)
        slot = self.slot(key, create=True)
        slot.label = label
        slot.add_existing(
            DocumentRecord(
                document_type=key,
                file_name=label,
                url="",
                status=DocumentStatus.SIGNED,
                uploaded_at=signed_at,
                signed_at=signed_at,
            )
        )

    def agreements(self) -> list[AgreementView]:
        student = self.store.read_student()
        signed = self._signed_agreements()
        views = []
        for key, label, attribute, name_keys in AGREEMENTS:
            source = getattr(student, attribute, None) if student else None
            company_name = None
            if isinstance(source, dict):
                company_name = next((source[k] for k in name_keys if source.get(k)), None)
            views.append(
                AgreementView(
                    key=key,
                    label=label,
                    available=bool(source),
                    company_name=company_name,
                    signed=key in signed,
                    signed_at=_parse_timestamp(signed[key]) if key in signed else None,
                )
            )
        return views

    def sign_agreement(self, key: str) -> bool:
        agreement = next((a for a in self.agreements() if a.key == key), None)
        if agreement is None:
            raise NotFoundError("Agreement", key)
        if not agreement.available:
            self.reporter(f"{agreement.label} is not available yet", "error")
            return False
        if agreement.signed:
            self.reporter(f"{agreement.label} is already signed", "error")
            return False

        now = datetime.now(timezone.utc)
        signed = self._signed_agreements()
        signed[key] = now.isoformat()
        self.store.set(SIGNED_AGREEMENTS_KEY, json.dumps(signed))
        self._record_signature(key, now)
        self.reporter("Agreement signed successfully!", "success")
        return True

    def progress(self) -> DocumentProgress:
        required = [slot for slot in self.slots.values() if slot.required]
        uploaded = sum(1 for slot in required if slot.documents)
        verified = sum(
            1
            for slot in required
            if any(d.status == DocumentStatus.VERIFIED for d in slot.documents)
        )
        return DocumentProgress(
            uploaded_count=uploaded,
            verified_count=verified,
            total_required=len(required),
            complete=uploaded == len(required),
        )

    def views(self) -> list[DocumentSlotView]:
        return [slot.view() for slot in self.slots.values()]
