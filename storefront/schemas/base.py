"""
Shared pydantic configuration.

Response schemas read straight from ORM rows and must inherit from
BaseResponseSchema. Input schemas ignore unknown keys.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """Built from ORM objects with `Model.model_validate(row)`."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    model_config = ConfigDict(extra='ignore')


class BaseUpdateSchema(BaseModel):
    """
    Partial update body.

    A field the client did not send is "absent" and is told apart from an
    explicit null through `model_fields_set`.
    """
    model_config = ConfigDict(extra='ignore')

    def is_set(self, field: str) -> bool:
        return field in self.model_fields_set
