"""
Shared pydantic base for API payloads.
Responses serialize to camelCase; requests accept either camelCase or snake_case.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    """Immutable domain record; update with model_copy(update=...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
