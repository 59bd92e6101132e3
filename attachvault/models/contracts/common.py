"""
Common contract helpers.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from attachvault.core.exceptions import InvalidArgumentError

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_contract(model: type[ModelT], **data: Any) -> ModelT:
    """
    Build a contract model, converting pydantic errors to InvalidArgumentError.

    Args:
        model: Contract class to instantiate
        **data: Field values

    Returns:
        Validated model instance

    Raises:
        InvalidArgumentError: With the first failing field and its message
    """
    try:
        return model(**data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first["loc"]) or None
        message = first["msg"]
        if field:
            message = f"{field}: {message}"
        raise InvalidArgumentError(message, field=field) from e
