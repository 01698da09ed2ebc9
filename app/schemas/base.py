"""
Shared pydantic configuration for API schemas.

Wire format is camelCase (``turnOrder``, ``attemptNumber``); Python code
uses snake_case. Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
