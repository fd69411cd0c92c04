"""JsonModel base class for API payloads."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model exposing camelCase over HTTP and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump_json(self, **kwargs) -> str:
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)
