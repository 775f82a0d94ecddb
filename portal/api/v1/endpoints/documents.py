"""Supporting document endpoints."""

from fastapi import APIRouter, File, UploadFile

from portal.core.dependencies import CurrentStudent, Notifications, RemoteApi, Store
from portal.core.exceptions import UploadError
from portal.schemas.document import DocumentsResponse, SelectedFile
from portal.services.documents import DocumentUploadController

router = APIRouter()


def _response(
    controller: DocumentUploadController,
    notifications: Notifications,
    success: bool = True,
) -> DocumentsResponse:
    return DocumentsResponse(
        success=success,
        slots=controller.views(),
        agreements=controller.agreements(),
        progress=controller.progress(),
        load_error=controller.load_error,
        notifications=notifications.drain(),
    )


@router.get("", response_model=DocumentsResponse)
async def list_documents(
    student: CurrentStudent,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    List uploaded documents grouped by type, with progress and agreements.
    """
    controller = DocumentUploadController(api, store, notifications)
    await controller.load(student.record_id)
    return _response(controller, notifications)


@router.post("/{document_type}", response_model=DocumentsResponse)
async def upload_document(
    document_type: str,
    student: CurrentStudent,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
    file: UploadFile = File(...),
):
    """
    Upload one supporting document.

    - PDF, JPG or PNG only, at most 5MB
    - Rejected files are never forwarded to the remote API
    """
    if not file.filename:
        raise UploadError("No file provided")

    content = await file.read()
    selected = SelectedFile(
        file_name=file.filename,
        content_type=file.content_type or "",
        size=len(content),
        content=content,
    )

    controller = DocumentUploadController(api, store, notifications)
    await controller.load(student.record_id)
    uploaded = False
    if controller.select(document_type, selected):
        uploaded = await controller.upload(document_type)
    return _response(controller, notifications, success=uploaded)


@router.post("/agreements/{key}/sign", response_model=DocumentsResponse)
async def sign_agreement(
    key: str,
    student: CurrentStudent,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Sign the SETA or placement agreement once it is available.
    """
    controller = DocumentUploadController(api, store, notifications)
    await controller.load(student.record_id)
    signed = controller.sign_agreement(key)
    return _response(controller, notifications, success=signed)
