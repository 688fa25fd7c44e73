from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Python tarafında snake_case, JSON tarafında camelCase
class _Base(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
