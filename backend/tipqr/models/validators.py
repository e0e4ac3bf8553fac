"""Model-level validation utilities for data integrity.

Reusable validators that enforce business rules at the ORM level, so invalid
data never reaches the database regardless of which endpoint or service
writes it.
"""


def positive_int(key: str, value):
    """Validate that an integer value is > 0."""
    if value is not None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {type(value).__name__}")
        if value <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value


def rating_score(key: str, value):
    """Validate that a rating is an integer between 1 and 5."""
    if value is not None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {type(value).__name__}")
        if value < 1 or value > 5:
            raise ValueError(f"{key} must be between 1 and 5, got {value}")
    return value


def one_of(key: str, value, allowed):
    """Validate that a value is one of the allowed enum values."""
    if value is not None and value not in {getattr(a, "value", a) for a in allowed}:
        raise ValueError(f"{key} must be one of {sorted(getattr(a, 'value', a) for a in allowed)}, got {value!r}")
    return value


def not_blank(key: str, value):
    """Validate that a required text value is not empty or whitespace."""
    if value is not None and not str(value).strip():
        raise ValueError(f"{key} cannot be blank")
    return value
