"""Shared pydantic configuration: camelCase on the wire, snake_case in code."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Response model, readable straight from ORM rows."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RequestModel(BaseModel):
    """Request body. Unknown keys are rejected rather than ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def provided(self) -> dict:
        """Only the fields the client actually sent, by attribute name."""
        return self.model_dump(exclude_unset=True)
