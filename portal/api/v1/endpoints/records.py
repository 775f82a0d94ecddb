"""Profile, biographical, banking and academic screen endpoints."""

from fastapi import APIRouter

from portal.core.dependencies import CurrentStudent, Notifications, RemoteApi, Store
from portal.core.exceptions import NotFoundError, ValidationError
from portal.schemas.record import RecordEdits, RecordScreenResponse
from portal.services.records import RECORDS
from portal.services.sync import RecordDefinition, RecordSyncController

router = APIRouter()


def _definition(record: str) -> RecordDefinition:
    definition = RECORDS.get(record)
    if definition is None:
        raise NotFoundError("Record type", record)
    return definition


def _response(
    controller: RecordSyncController,
    notifications: Notifications,
    success: bool = True,
) -> RecordScreenResponse:
    return RecordScreenResponse(
        success=success,
        record=controller.definition.name,
        notifications=notifications.drain(),
        **controller.snapshot(),
    )


@router.get("/{record}", response_model=RecordScreenResponse)
async def load_record(
    record: str,
    student: CurrentStudent,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Load a record's form state for the signed-in student.

    A record that does not exist yet comes back with `exists: false` and an
    empty form; the next save creates it.
    """
    controller = RecordSyncController(_definition(record), api, store, notifications)
    await controller.initialize(student.record_id)
    return _response(controller, notifications)


@router.post("/{record}", response_model=RecordScreenResponse)
async def save_record(
    record: str,
    request: RecordEdits,
    student: CurrentStudent,
    api: RemoteApi,
    store: Store,
    notifications: Notifications,
):
    """
    Apply form edits and save the record.

    Validation failures and server rejections return `success: false` with
    field errors; the submitted edits are kept in `form`.
    """
    controller = RecordSyncController(_definition(record), api, store, notifications)
    await controller.initialize(student.record_id)
    try:
        controller.apply_edits(request.fields)
    except KeyError as e:
        field = e.args[0]
        raise ValidationError(f"Unknown field '{field}' for {record}", details={"field": field})
    saved = await controller.submit()
    return _response(controller, notifications, success=saved)
