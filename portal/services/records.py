"""Record types handled by the portal's data-entry screens."""

from portal.services import normalizers, validators
from portal.services.remote_api import ProfileApiClient
from portal.services.sync import RecordDefinition


BANKING = RecordDefinition(
    name="banking",
    label="Banking details",
    normalizer=normalizers.BANKING,
    validator=validators.validate_banking,
    fetch=ProfileApiClient.get_banking_details,
    create=ProfileApiClient.create_banking_details,
    update=ProfileApiClient.update_banking_details,
    success_message="Banking details saved successfully",
    failure_message="Failed to save details",
    invalid_message="Please complete all banking fields",
)

# The biographical endpoint upserts, so create and update share it.
BIOGRAPHICAL = RecordDefinition(
    name="biographical",
    label="Biographical details",
    normalizer=normalizers.BIOGRAPHICAL,
    validator=validators.validate_biographical,
    fetch=ProfileApiClient.get_biographical,
    create=ProfileApiClient.save_biographical,
    update=ProfileApiClient.save_biographical,
    success_message="Biographical details saved successfully",
    failure_message="Failed to save biographical details",
)

PROFILE = RecordDefinition(
    name="profile",
    label="Profile",
    normalizer=normalizers.PROFILE,
    validator=validators.validate_profile,
    fetch=ProfileApiClient.get_student,
    create=ProfileApiClient.edit_student,
    update=ProfileApiClient.update_profile,
    success_message="Profile updated successfully!",
    failure_message="Failed to update profile",
    merge_full_response=True,
)

ACADEMICS = RecordDefinition(
    name="academics",
    label="Academic information",
    normalizer=normalizers.ACADEMICS,
)

RECORDS: dict[str, RecordDefinition] = {
    definition.name: definition
    for definition in (BANKING, BIOGRAPHICAL, PROFILE, ACADEMICS)
}
