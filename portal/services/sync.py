"""Record sync controller.

Every data-entry screen of the portal follows the same cycle: fetch the
current record when the screen opens, let the student edit a local form,
validate it, post it to the create or update endpoint, then fold the
server's answer back into the form and into the session. The
``RecordSyncController`` runs that cycle for any record type described by
a ``RecordDefinition``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from portal.core.exceptions import (
    ReadOnlyFieldError,
    RemoteAPIError,
    RemoteNotFoundError,
    RemoteTransportError,
)
from portal.services.normalizers import FieldNormalizer, unwrap_record
from portal.services.notification import Reporter, null_reporter
from portal.services.remote_api import ProfileApiClient
from portal.services.session_store import SessionStore
from portal.services.validators import ErrorMap, Validator

logger = logging.getLogger(__name__)

FetchFn = Callable[[ProfileApiClient, int | str], Awaitable[Any]]
WriteFn = Callable[[ProfileApiClient, dict[str, Any]], Awaitable[Any]]

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."

# Response metadata that never belongs in the session student
ENVELOPE_KEYS = frozenset({"message", "success", "errors", "detail", "status_code"})


@dataclass(frozen=True)
class RecordDefinition:
    """Everything the controller needs to know about one record type.

    When ``fetch`` is None the record is seeded from the session student
    instead of the remote API. A definition with neither ``create`` nor
    ``update`` is read-only.
    """

    name: str
    label: str
    normalizer: FieldNormalizer
    validator: Validator | None = None
    fetch: FetchFn | None = None
    create: WriteFn | None = None
    update: WriteFn | None = None
    success_message: str = "Details saved successfully"
    failure_message: str = "Failed to save details"
    invalid_message: str = "Please correct the highlighted fields"
    # Merge the whole server record into the session, not only form fields
    merge_full_response: bool = False

    @property
    def read_only(self) -> bool:
        return self.create is None and self.update is None


class RecordSyncController:
    """Keeps one record type's form state consistent with the server."""

    def __init__(
        self,
        definition: RecordDefinition,
        api: ProfileApiClient,
        store: SessionStore,
        reporter: Reporter | None = None,
    ):
        self.definition = definition
        self.normalizer = definition.normalizer
        self.api = api
        self.store = store
        self.reporter = reporter or null_reporter

        self.record_id: int | str | None = None
        self.form: dict[str, str] = self.normalizer.defaults()
        self.errors: ErrorMap = {}
        self.exists = False
        self.loading = False
        self.load_error: str | None = None

    async def initialize(self, record_id: int | str | None) -> None:
        """Load the current record. A missing id is a no-op."""
        if record_id is None or record_id == "":
            return
        self.record_id = record_id
        self.load_error = None

        if self.definition.fetch is None:
            student = self.store.read_student()
            if student is not None:
                self.form = self.normalizer.api_to_form(student.model_dump())
                self.exists = True
            return

        try:
            data = await self.definition.fetch(self.api, record_id)
        except RemoteNotFoundError:
            logger.info(f"No existing {self.definition.name} record for user {record_id}")
            self.exists = False
            return
        except RemoteTransportError as e:
            logger.warning(f"Could not load {self.definition.name} for user {record_id}: {e}")
            self.load_error = f"Unable to load {self.definition.label.lower()}. Please try again."
            return
        except RemoteAPIError as e:
            logger.warning(f"Could not load {self.definition.name} for user {record_id}: {e}")
            self.load_error = e.message or f"Unable to load {self.definition.label.lower()}."
            return

        self.form = self.normalizer.api_to_form(data)
        self.exists = True

    def edit(self, field: str, value: Any) -> None:
        """Update one form field and clear its error."""
        if field not in self.form:
            raise KeyError(field)
        if field in self.normalizer.read_only_keys or self.definition.read_only:
            raise ReadOnlyFieldError(field)
        self.form[field] = "" if value is None else str(value)
        self.errors.pop(field, None)

    def apply_edits(self, changes: dict[str, Any]) -> None:
        for field, value in changes.items():
            self.edit(field, value)

    def validate(self) -> bool:
        """Run client-side validation, surfacing errors on failure."""
        if self.definition.validator is None:
            return True
        errors = self.definition.validator(self.form)
        if errors:
            self.errors = errors
            self.reporter(self.definition.invalid_message, "error")
            return False
        return True

    async def submit(self) -> bool:
        """Validate, post and reconcile. Returns True when the save succeeded."""
        if self.loading:
            logger.warning(f"Ignoring {self.definition.name} submit while another is in flight")
            return False
        if self.definition.read_only:
            self.reporter(f"{self.definition.label} cannot be edited", "error")
            return False
        if self.record_id is None:
            self.reporter("Your session has no student record. Please log in again.", "error")
            return False

        self.errors = {}
        if not self.validate():
            return False

        payload = self.normalizer.form_to_api(self.record_id, self.form)
        write = self.definition.update if self.exists else self.definition.create
        if write is None:
            write = self.definition.update or self.definition.create

        self.loading = True
        try:
            response = await write(self.api, payload)
        except RemoteTransportError as e:
            logger.warning(f"Saving {self.definition.name} failed: {e}")
            self.reporter(GENERIC_FAILURE_MESSAGE, "error")
            return False
        except RemoteAPIError as e:
            logger.info(f"Saving {self.definition.name} rejected ({e.status_code}): {e.message}")
            if e.errors:
                self.errors = self.normalizer.server_errors_to_form(e.errors)
            self.reporter(e.message or self.definition.failure_message, "error")
            return False
        finally:
            self.loading = False

        self._reconcile(payload, response)
        self.exists = True
        self.reporter(self.definition.success_message, "success")
        return True

    def _reconcile(self, payload: dict[str, Any], response: Any) -> None:
        """Fold the server's answer into form state and the session."""
        returned = self.normalizer.api_to_form(response)
        returned_keys = self.normalizer.present_keys(response)
        sent = self.normalizer.api_to_form(payload)
        sent_keys = self.normalizer.present_keys(payload)

        form = dict(self.form)
        for key in self.normalizer.form_keys:
            if key in returned_keys:
                form[key] = returned[key]
            elif key in sent_keys:
                form[key] = sent[key]
        self.form = form

        changes = self.normalizer.form_to_record(form)
        if self.definition.merge_full_response:
            record = {
                key: value
                for key, value in unwrap_record(response).items()
                if key not in ENVELOPE_KEYS
            }
            changes = {**record, **changes}
        self.store.merge_student(changes)

    def snapshot(self) -> dict[str, Any]:
        return {
            "form": dict(self.form),
            "errors": dict(self.errors),
            "exists": self.exists,
            "loading": self.loading,
            "load_error": self.load_error,
            "read_only": self.definition.read_only,
        }
