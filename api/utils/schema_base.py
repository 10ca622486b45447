"""
Shared pydantic base for request/response schemas.

Python side is snake_case; the browser client speaks camelCase.
Both spellings are accepted on input, aliases are used on output.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APISchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
