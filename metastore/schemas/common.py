"""Shared Pydantic schemas."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire and in the stored JSON."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }

    def to_json_dict(self, **kwargs) -> dict:
        return self.model_dump(mode="json", by_alias=True, **kwargs)

    def changes(self, target: type[BaseModel]) -> dict:
        """
        Fields explicitly set on a partial update.

        An explicit null is kept only for fields of ``target`` that default to
        None (e.g. thumbnailUrl, userAgent); elsewhere it means "leave as is".
        """
        fields = target.model_fields
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or (name in fields and fields[name].default is None)
        }


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | None = None
