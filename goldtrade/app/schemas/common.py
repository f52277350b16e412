"""
Shared schema configuration.

Request and response bodies use camelCase on the wire, matching the
existing web and mobile clients; snake_case names are accepted as well.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
    success: bool = True
    message: str
