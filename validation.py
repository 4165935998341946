from typing import Dict, Mapping

# Field name -> message reported when the field is missing
REGISTRATION_FIELDS = {
    "name": "Name is required",
    "email": "Email is required",
    "password": "Password is required",
    "phone": "Phone number is required",
    "age": "Age is required",
    "address": "Address is required",
}

TASK_FIELDS = {
    "title": "Title is required",
    "content": "Content is required",
    "category": "Category is required",
    "priority": "Priority is required",
    "tags": "Tags are required",
    "status": "Status is required",
    "date": "Date is required",
}


class FieldValidationError(Exception):
    def __init__(self, errors: Dict[str, str]):
        super().__init__(f"Missing fields: {', '.join(errors)}")
        self.errors = errors


def find_missing_fields(payload: Mapping, required: Mapping[str, str]) -> Dict[str, str]:
    """Return the message of every required field that is absent or empty."""
    return {field: message for field, message in required.items() if not payload.get(field)}


def _check(payload: Mapping, required: Mapping[str, str]) -> Mapping:
    errors = find_missing_fields(payload, required)
    if errors:
        raise FieldValidationError(errors)
    return payload


def validate_registration(payload: Mapping) -> Mapping:
    return _check(payload, REGISTRATION_FIELDS)


# Used for updates as well, so an update has to resend every task field.
def validate_task(payload: Mapping) -> Mapping:
    return _check(payload, TASK_FIELDS)
