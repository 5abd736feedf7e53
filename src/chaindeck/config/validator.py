"""Validation utilities for chaindeck configuration."""

from pydantic import ValidationError as PydanticValidationError


def flatten_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten a Pydantic ValidationError into one line per field.

    Locations are joined with dots, so an error on the second step's name
    reads ``Field 'steps.1.name': ...``.

    Args:
        exc: Pydantic ValidationError exception

    Returns:
        List of human-readable error messages
    """
    errors: list[str] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        field_path = ".".join(str(item) for item in loc) if loc else "unknown"
        msg = error.get("msg", "Unknown error")

        if error.get("type") in ("value_error", "enum", "extra_forbidden"):
            errors.append(
                f"Field '{field_path}': {msg} (received: {error.get('input')!r})"
            )
        else:
            errors.append(f"Field '{field_path}': {msg}")

    return errors or ["Validation failed with unknown error"]
