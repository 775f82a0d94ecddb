"""Field mapping between remote API records and portal form state.

The remote API speaks snake_case; portal forms use camelCase keys. Each
record type has one ``FieldNormalizer`` describing that mapping, so the
conversion in both directions stays symmetric.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldSpec:
    """Mapping of a single form field to its API counterpart."""

    form_key: str
    api_key: str
    # Key used when writing, if the API expects a different name on input
    outbound_key: str | None = None
    # Extra keys accepted when reading
    aliases: tuple[str, ...] = ()
    lower: bool = False
    is_date: bool = False
    read_only: bool = False
    # Drop inner whitespace, e.g. account numbers typed in groups
    compact: bool = False

    @property
    def write_key(self) -> str:
        return self.outbound_key or self.api_key

    @property
    def read_keys(self) -> tuple[str, ...]:
        keys = (self.api_key,) + self.aliases
        if self.outbound_key and self.outbound_key not in keys:
            keys += (self.outbound_key,)
        return keys


def unwrap_record(api_record: Any) -> dict[str, Any]:
    """Return the record body, tolerating ``{"student": ...}``/``{"data": ...}`` envelopes."""
    if not isinstance(api_record, dict):
        return {}
    for envelope in ("student", "data"):
        inner = api_record.get(envelope)
        if isinstance(inner, dict):
            return inner
    return api_record


def compact(text: str) -> str:
    return "".join(text.split())


def _to_form_value(spec: FieldSpec, value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if spec.lower:
        text = text.lower()
    if spec.is_date and len(text) > 10 and text[4:5] == "-" and text[10:11] in ("T", " "):
        text = text[:10]
    return text


class FieldNormalizer:
    """Pair of pure conversions for one record type."""

    def __init__(self, name: str, fields: list[FieldSpec]):
        self.name = name
        self.fields = fields

    @property
    def form_keys(self) -> list[str]:
        return [f.form_key for f in self.fields]

    @property
    def read_only_keys(self) -> set[str]:
        return {f.form_key for f in self.fields if f.read_only}

    def defaults(self) -> dict[str, str]:
        return {f.form_key: "" for f in self.fields}

    def api_to_form(self, api_record: Any) -> dict[str, str]:
        """Map an API record (or nothing) to form state. Never raises."""
        record = unwrap_record(api_record)
        form = self.defaults()
        for spec in self.fields:
            for key in spec.read_keys:
                if record.get(key) is not None:
                    form[spec.form_key] = _to_form_value(spec, record[key])
                    break
        return form

    def present_keys(self, api_record: Any) -> set[str]:
        """Form keys for which the API record carries a value."""
        record = unwrap_record(api_record)
        return {
            spec.form_key
            for spec in self.fields
            if any(record.get(key) is not None for key in spec.read_keys)
        }

    def form_to_api(self, user_id: int | str, form: dict[str, Any]) -> dict[str, Any]:
        """Map form state to an outbound payload.

        Strings are trimmed, enumerated values lower-cased, read-only fields
        skipped and empty fields left out so they never blank a stored value.
        """
        payload: dict[str, Any] = {"user_id": user_id}
        for spec in self.fields:
            if spec.read_only:
                continue
            value = form.get(spec.form_key)
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if spec.lower:
                    value = value.lower()
                if spec.compact:
                    value = compact(value)
                if not value:
                    continue
            payload[spec.write_key] = value
        return payload

    def form_to_record(self, form: dict[str, Any]) -> dict[str, Any]:
        """Map form state to canonical API keys (used for session merges)."""
        record: dict[str, Any] = {}
        for spec in self.fields:
            value = form.get(spec.form_key)
            if value in (None, ""):
                continue
            record[spec.api_key] = value
        return record

    def server_errors_to_form(
        self,
        errors: dict[str, list[str]],
        keep_unknown: bool = False,
    ) -> dict[str, str]:
        """Map server field errors onto form keys, keeping the first message.

        Errors for keys no field claims are dropped unless ``keep_unknown``
        is set, in which case they pass through under the server's key.
        """
        mapped: dict[str, str] = {}
        for key, messages in errors.items():
            if not messages:
                continue
            for spec in self.fields:
                if key == spec.form_key or key in spec.read_keys:
                    mapped[spec.form_key] = messages[0]
                    break
            else:
                if keep_unknown:
                    mapped.setdefault(key, messages[0])
        return mapped


BANKING = FieldNormalizer(
    "banking",
    [
        FieldSpec("bankName", "bank_name"),
        FieldSpec("accountType", "account_type"),
        FieldSpec("accountNumber", "account_number", compact=True),
    ],
)

BIOGRAPHICAL = FieldNormalizer(
    "biographical",
    [
        FieldSpec("dateOfBirth", "date_of_birth", outbound_key="dob", is_date=True),
        FieldSpec("gender", "gender", lower=True),
        FieldSpec("address", "address"),
    ],
)

PROFILE = FieldNormalizer(
    "profile",
    [
        FieldSpec("firstName", "first_name"),
        FieldSpec("lastName", "last_name"),
        FieldSpec("email", "email"),
        FieldSpec("phone", "phone_number", aliases=("phone",)),
        FieldSpec("dateOfBirth", "date_of_birth", aliases=("dob",), is_date=True),
        FieldSpec("gender", "gender", lower=True),
        FieldSpec("address", "address"),
        FieldSpec("studentNumber", "student_number", read_only=True),
        FieldSpec("idNumber", "id_number", read_only=True),
        FieldSpec("faculty", "faculty", read_only=True),
        FieldSpec("programme", "programme", read_only=True),
        FieldSpec("registrationDate", "registration_date", is_date=True, read_only=True),
        FieldSpec("status", "status", read_only=True),
    ],
)

ACADEMICS = FieldNormalizer(
    "academics",
    [
        FieldSpec("studentNumber", "student_number", read_only=True),
        FieldSpec("faculty", "faculty", read_only=True),
        FieldSpec("programme", "programme", read_only=True),
        FieldSpec("registrationDate", "registration_date", is_date=True, read_only=True),
        FieldSpec("status", "status", read_only=True),
    ],
)

# Login, MFA, verification and password reset forms share one error map
AUTH_FORMS = FieldNormalizer(
    "auth",
    [
        FieldSpec("email", "email"),
        FieldSpec("password", "password"),
        FieldSpec("code", "mfa_code", aliases=("token", "code")),
        FieldSpec("otp", "otp"),
        FieldSpec("newPassword", "new_password"),
        FieldSpec("confirmPassword", "confirm_password"),
    ],
)
