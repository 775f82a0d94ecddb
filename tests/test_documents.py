import json

import httpx
import pytest

from portal.core.exceptions import NotFoundError
from portal.schemas.document import DocumentStatus, SelectedFile, SlotState
from portal.services.documents import (
    SIGNED_AGREEMENTS_KEY,
    DocumentSlot,
    DocumentUploadController,
)

MB = 1024 * 1024


def pdf(size: int = 2 * MB, name: str = "id.pdf") -> SelectedFile:
    return SelectedFile(
        file_name=name,
        content_type="application/pdf",
        size=size,
        content=b"%PDF-1.4 test",
    )


def messages(reporter):
    return [(n.message, n.severity) for n in reporter.drain()]


class TestDocumentSlot:
    def test_accepts_small_pdf(self):
        slot = DocumentSlot("idDocument", "ID Document / Passport")
        assert slot.select(pdf()) is None
        assert slot.state == SlotState.FILE_SELECTED
        assert slot.selected.file_name == "id.pdf"

    def test_rejects_large_file(self):
        slot = DocumentSlot("idDocument", "ID Document / Passport")
        assert slot.select(pdf(size=6 * MB)) == "File size must be less than 5MB"
        assert slot.state == SlotState.EMPTY
        assert slot.selected is None

    @pytest.mark.parametrize(
        "name,content_type",
        [
            ("setup.exe", "application/octet-stream"),
            ("notes.docx", "application/pdf"),
            ("scan.pdf", "text/plain"),
        ],
    )
    def test_rejects_other_types(self, name, content_type):
        slot = DocumentSlot("cv", "Curriculum Vitae (CV)")
        file = SelectedFile(file_name=name, content_type=content_type, size=1024)
        assert slot.select(file) == "Only PDF, JPG, and PNG files are allowed"
        assert slot.state == SlotState.EMPTY

    def test_accepts_images(self):
        slot = DocumentSlot("cv", "Curriculum Vitae (CV)")
        file = SelectedFile(file_name="CV.JPG", content_type="image/jpeg", size=1024)
        assert slot.select(file) is None

    def test_cancel_returns_to_resting_state(self):
        slot = DocumentSlot("cv", "Curriculum Vitae (CV)")
        slot.select(pdf())
        slot.cancel()
        assert slot.state == SlotState.EMPTY
        assert slot.selected is None

    def test_failed_upload_keeps_selection(self):
        slot = DocumentSlot("cv", "Curriculum Vitae (CV)")
        slot.select(pdf())
        slot.begin_upload()
        assert slot.state == SlotState.UPLOADING
        assert slot.select(pdf(name="other.pdf")) == "An upload is already in progress"

        slot.fail_upload()
        assert slot.state == SlotState.EMPTY
        assert slot.selected.file_name == "id.pdf"

    def test_begin_upload_requires_selection(self):
        slot = DocumentSlot("cv", "Curriculum Vitae (CV)")
        with pytest.raises(ValueError):
            slot.begin_upload()


class TestDocumentUploadController:
    pytestmark = pytest.mark.anyio

    async def test_load_groups_documents_by_type(self, remote, api, signed_in_store):
        remote.add(
            "GET",
            "/students/documents/5",
            json_body={
                "documents": [
                    {"doc_type": "cv", "document": "https://cdn.test/docs/cv-v1.pdf", "uploaded_at": "2025-01-01T10:00:00Z"},
                    {"doc_type": "idDocument", "document": "https://cdn.test/docs/id.pdf", "status": "Verified"},
                    {"doc_type": "cv", "document": "https://cdn.test/docs/cv-v2.pdf"},
                    {"doc_type": "medicalCertificate", "document": "https://cdn.test/docs/med.pdf"},
                    {"doc_type": "cv"},
                ]
            },
        )
        controller = DocumentUploadController(api, signed_in_store)
        await controller.load(5)

        cv = controller.slot("cv")
        assert [d.file_name for d in cv.documents] == ["cv-v1.pdf", "cv-v2.pdf"]
        assert cv.state == SlotState.UPLOADED
        assert controller.slot("idDocument").documents[0].status == DocumentStatus.VERIFIED
        assert controller.slot("medicalCertificate").required is False

        progress = controller.progress()
        assert progress.uploaded_count == 2
        assert progress.verified_count == 1
        assert progress.total_required == 5
        assert progress.complete is False

    async def test_malformed_items_are_skipped(self, remote, api, signed_in_store):
        remote.add(
            "GET",
            "/students/documents/5",
            json_body={
                "documents": [
                    "https://cdn.test/docs/stray.pdf",
                    None,
                    ["cv"],
                    {"doc_type": "cv", "document": "https://cdn.test/docs/cv.pdf"},
                ]
            },
        )
        controller = DocumentUploadController(api, signed_in_store)
        await controller.load(5)

        assert controller.load_error is None
        assert [d.file_name for d in controller.slot("cv").documents] == ["cv.pdf"]
        assert controller.progress().uploaded_count == 1

    async def test_no_documents_yet(self, remote, api, signed_in_store):
        controller = DocumentUploadController(api, signed_in_store)
        await controller.load(5)

        assert controller.load_error is None
        assert all(view.state == SlotState.EMPTY for view in controller.views())

    async def test_load_failure_is_reported(self, remote, api, signed_in_store):
        remote.add("GET", "/students/documents/5", status=500, json_body={"message": "boom"})
        controller = DocumentUploadController(api, signed_in_store)
        await controller.load(5)
        assert controller.load_error == "Failed to load documents"

    async def test_rejected_file_never_reaches_server(self, remote, api, signed_in_store, reporter):
        controller = DocumentUploadController(api, signed_in_store, reporter)
        await controller.load(5)
        calls = len(remote.calls)

        assert controller.select("idDocument", pdf(size=6 * MB)) is False
        exe = SelectedFile(file_name="setup.exe", content_type="application/x-msdownload", size=1024)
        assert controller.select("idDocument", exe) is False
        assert await controller.upload("idDocument") is False

        assert len(remote.calls) == calls
        assert messages(reporter) == [
            ("File size must be less than 5MB", "error"),
            ("Only PDF, JPG, and PNG files are allowed", "error"),
        ]

    async def test_unknown_slot(self, api, signed_in_store):
        controller = DocumentUploadController(api, signed_in_store)
        with pytest.raises(NotFoundError):
            controller.select("passportPhoto", pdf())

    async def test_upload_success(self, remote, api, signed_in_store, reporter):
        remote.add(
            "POST",
            "/students/upload/supporting-documents",
            json_body={"files": ["https://cdn.test/docs/5/id.pdf"], "uploaded_count": 1},
        )
        controller = DocumentUploadController(api, signed_in_store, reporter)
        await controller.load(5)

        assert controller.select("idDocument", pdf()) is True
        assert controller.slot("idDocument").state == SlotState.FILE_SELECTED
        assert await controller.upload("idDocument") is True

        slot = controller.slot("idDocument")
        assert slot.state == SlotState.UPLOADED
        assert slot.selected is None
        assert [(d.file_name, d.status) for d in slot.documents] == [
            ("id.pdf", DocumentStatus.PENDING)
        ]
        assert messages(reporter) == [("Uploaded 1 document(s) for idDocument", "success")]

        body = remote.requests_to("POST", "/students/upload/supporting-documents")[0].content
        assert b'name="user_id"' in body
        assert b'name="document_type"' in body
        assert b"idDocument" in body
        assert b'filename="id.pdf"' in body

    async def test_second_upload_appends(self, remote, api, signed_in_store):
        remote.add(
            "GET",
            "/students/documents/5",
            json_body={"documents": [{"doc_type": "cv", "document": "https://cdn.test/docs/cv-v1.pdf"}]},
        )
        remote.add(
            "POST",
            "/students/upload/supporting-documents",
            json_body={"files": ["https://cdn.test/docs/cv-v2.pdf"]},
        )
        controller = DocumentUploadController(api, signed_in_store)
        await controller.load(5)
        controller.select("cv", pdf(name="cv-v2.pdf"))

        assert await controller.upload("cv") is True
        assert [d.file_name for d in controller.slot("cv").documents] == ["cv-v1.pdf", "cv-v2.pdf"]

    async def test_server_rejection_keeps_selection_for_retry(self, remote, api, signed_in_store, reporter):
        responses = iter(
            [
                httpx.Response(400, json={"message": "File is corrupt"}),
                httpx.Response(200, json={"files": ["https://cdn.test/docs/id.pdf"]}),
            ]
        )
        remote.add(
            "POST",
            "/students/upload/supporting-documents",
            handler=lambda request: next(responses),
        )
        controller = DocumentUploadController(api, signed_in_store, reporter)
        await controller.load(5)
        controller.select("idDocument", pdf())

        assert await controller.upload("idDocument") is False
        slot = controller.slot("idDocument")
        assert slot.state == SlotState.EMPTY
        assert slot.selected is not None
        assert messages(reporter) == [("File is corrupt", "error")]

        assert await controller.upload("idDocument") is True
        assert slot.state == SlotState.UPLOADED

    async def test_unreadable_response(self, remote, api, signed_in_store, reporter):
        remote.add(
            "POST",
            "/students/upload/supporting-documents",
            handler=lambda request: httpx.Response(200, text="<html>gateway</html>"),
        )
        controller = DocumentUploadController(api, signed_in_store, reporter)
        await controller.load(5)
        controller.select("cv", pdf())

        assert await controller.upload("cv") is False
        assert messages(reporter) == [("Upload failed: invalid server response", "error")]

    async def test_response_without_files(self, remote, api, signed_in_store, reporter):
        remote.add("POST", "/students/upload/supporting-documents", json_body={"message": "ok"})
        controller = DocumentUploadController(api, signed_in_store, reporter)
        await controller.load(5)
        controller.select("cv", pdf())

        assert await controller.upload("cv") is False
        assert controller.slot("cv").state == SlotState.EMPTY
        assert messages(reporter) == [("Upload failed: invalid server response", "error")]

    async def test_network_failure(self, remote, api, signed_in_store, reporter):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        remote.add("POST", "/students/upload/supporting-documents", handler=unreachable)
        controller = DocumentUploadController(api, signed_in_store, reporter)
        await controller.load(5)
        controller.select("cv", pdf())

        assert await controller.upload("cv") is False
        assert messages(reporter) == [("Error uploading document. Try again.", "error")]


class TestAgreements:
    def test_unavailable_until_allocated(self, api, signed_in_store, reporter):
        controller = DocumentUploadController(api, signed_in_store, reporter)
        agreements = {a.key: a for a in controller.agreements()}
        assert agreements["setaAgreement"].available is False
        assert agreements["placementAgreement"].available is False

        assert controller.sign_agreement("setaAgreement") is False
        assert messages(reporter) == [("SETA Agreement is not available yet", "error")]

    def test_sign_available_agreement(self, api, signed_in_store, reporter):
        signed_in_store.merge_student(
            {"seta_allocation": {"setaName": "MERSETA"}, "placement": {"company_name": "Acme Ltd"}}
        )
        controller = DocumentUploadController(api, signed_in_store, reporter)

        agreements = {a.key: a for a in controller.agreements()}
        assert agreements["setaAgreement"].company_name == "MERSETA"
        assert agreements["placementAgreement"].company_name == "Acme Ltd"

        assert controller.sign_agreement("placementAgreement") is True
        assert messages(reporter) == [("Agreement signed successfully!", "success")]

        agreements = {a.key: a for a in controller.agreements()}
        assert agreements["placementAgreement"].signed is True
        assert agreements["placementAgreement"].signed_at is not None
        assert agreements["setaAgreement"].signed is False
        assert "placementAgreement" in json.loads(signed_in_store.get(SIGNED_AGREEMENTS_KEY))

        signed_doc = controller.slot("placementAgreement").documents[0]
        assert signed_doc.status == DocumentStatus.SIGNED
        assert signed_doc.signed_at is not None

        assert controller.sign_agreement("placementAgreement") is False
        assert messages(reporter) == [("Placement Agreement is already signed", "error")]

        # A later screen sees the signature again
        reloaded = DocumentUploadController(api, signed_in_store)
        slot = reloaded.slot("placementAgreement")
        assert slot.label == "Placement Agreement"
        assert [d.status for d in slot.documents] == [DocumentStatus.SIGNED]
        assert reloaded.progress().uploaded_count == 0

    def test_unknown_agreement(self, api, signed_in_store):
        controller = DocumentUploadController(api, signed_in_store)
        with pytest.raises(NotFoundError):
            controller.sign_agreement("leaseAgreement")
