"""
Validation functions for the customers API
All validators return (is_valid, result_or_error_message)
"""
from models.customer import FIELDS, Customer, CustomerUpdate


def validate_customer_shape(data):
    """Check the body is a JSON object whose customer fields are strings or null"""
    if not isinstance(data, dict):
        return False, "JSON body must be an object"

    for field in FIELDS:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            return False, f"Field '{field}' must be a string, got {type(value).__name__}"
    return True, None


def validate_new_customer(data):
    """Parse a create body; missing fields are stored as empty strings and any id is ignored"""
    is_valid, error = validate_customer_shape(data)
    if not is_valid:
        return False, error

    return True, Customer(**{field: data.get(field) or '' for field in FIELDS})


def validate_customer_update(data):
    """Parse an update body, keeping None for fields the caller did not send"""
    is_valid, error = validate_customer_shape(data)
    if not is_valid:
        return False, error

    return True, CustomerUpdate(**{field: data.get(field) for field in FIELDS})
