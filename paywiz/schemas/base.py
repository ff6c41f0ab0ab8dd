from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Platform payloads use camelCase keys; attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def blank_to_none(value):
    # The API sends "" for unset timestamps
    if value == "":
        return None
    return value
