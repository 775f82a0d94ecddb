"""Client-side form validation.

Each validator is a pure function from form state to an error map of
``{field: message}``. An empty map means the form can be submitted.
"""

import re
from datetime import date
from typing import Any, Callable

from portal.services.normalizers import compact

ErrorMap = dict[str, str]
Validator = Callable[[dict[str, Any]], ErrorMap]

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ()-]{6,19}$")
ACCOUNT_NUMBER_PATTERN = re.compile(r"^[0-9]{4,20}$")

ACCOUNT_TYPES = ("Savings", "Cheque", "Current")
GENDERS = ("male", "female", "other")


def _text(form: dict[str, Any], field: str) -> str:
    value = form.get(field)
    if value is None:
        return ""
    return str(value).strip()


def _is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.search(value))


def validate_banking(form: dict[str, Any]) -> ErrorMap:
    errors: ErrorMap = {}
    if not _text(form, "bankName"):
        errors["bankName"] = "Bank name is required"

    account_type = _text(form, "accountType")
    if not account_type:
        errors["accountType"] = "Account type is required"
    elif account_type not in ACCOUNT_TYPES:
        errors["accountType"] = "Account type must be Savings, Cheque or Current"

    account_number = compact(_text(form, "accountNumber"))
    if not account_number:
        errors["accountNumber"] = "Account number is required"
    elif not ACCOUNT_NUMBER_PATTERN.match(account_number):
        errors["accountNumber"] = "Account number must contain only digits"
    return errors


def validate_biographical(form: dict[str, Any], today: date | None = None) -> ErrorMap:
    errors: ErrorMap = {}
    dob = _text(form, "dateOfBirth")
    if not dob:
        errors["dateOfBirth"] = "Date of birth is required"
    else:
        try:
            born = date.fromisoformat(dob)
        except ValueError:
            errors["dateOfBirth"] = "Date of birth must be a valid date (YYYY-MM-DD)"
        else:
            if born > (today or date.today()):
                errors["dateOfBirth"] = "Date of birth cannot be in the future"

    gender = _text(form, "gender").lower()
    if not gender:
        errors["gender"] = "Gender is required"
    elif gender not in GENDERS:
        errors["gender"] = "Gender must be male, female or other"

    if not _text(form, "address"):
        errors["address"] = "Address is required"
    return errors


def validate_profile(form: dict[str, Any]) -> ErrorMap:
    errors: ErrorMap = {}
    if not _text(form, "firstName"):
        errors["firstName"] = "First name is required"
    if not _text(form, "lastName"):
        errors["lastName"] = "Last name is required"

    email = _text(form, "email")
    if not email:
        errors["email"] = "Email is required"
    elif not _is_email(email):
        errors["email"] = "Email is invalid"

    phone = _text(form, "phone")
    if phone and not PHONE_PATTERN.match(phone):
        errors["phone"] = "Phone number is invalid"

    gender = _text(form, "gender").lower()
    if gender and gender not in GENDERS:
        errors["gender"] = "Gender must be male, female or other"
    return errors


def validate_login(form: dict[str, Any]) -> ErrorMap:
    errors: ErrorMap = {}
    email = _text(form, "email")
    if not email:
        errors["email"] = "Email is required"
    elif not _is_email(email):
        errors["email"] = "Email is invalid"

    # Passwords are not trimmed
    if not form.get("password"):
        errors["password"] = "Password is required"
    return errors


def validate_code(form: dict[str, Any], label: str = "Verification code") -> ErrorMap:
    if not _text(form, "code"):
        return {"code": f"{label} is required"}
    return {}


def validate_forgot_password(form: dict[str, Any]) -> ErrorMap:
    email = _text(form, "email")
    if not email:
        return {"email": "Email is required"}
    if not _is_email(email):
        return {"email": "Email is invalid"}
    return {}


def validate_reset_password(form: dict[str, Any]) -> ErrorMap:
    errors: ErrorMap = {}
    if not _text(form, "email"):
        errors["email"] = "Email is required"
    if not _text(form, "otp"):
        errors["otp"] = "OTP is required"
    if not _text(form, "newPassword"):
        errors["newPassword"] = "New password is required"
    if form.get("newPassword") != form.get("confirmPassword"):
        errors["confirmPassword"] = "Passwords do not match"
    return errors
