# backend/tradejournal/services/validation.py
"""
Input validation at the service boundary.

Services accept plain keyword values and run them through the Pydantic
schemas in tradejournal.schemas; a rejected value surfaces as
InvalidArgumentError, never as a pydantic ValidationError.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from tradejournal.services.exceptions import InvalidArgumentError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def validate_input(schema: type[SchemaT], **values: Any) -> SchemaT:
    """
    Build a schema from keyword values for a service call.

    Raises:
        InvalidArgumentError: With the first failing field and its message
    """
    try:
        return schema(**values)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise InvalidArgumentError(f"{field or schema.__name__}: {first['msg']}", field=field)
