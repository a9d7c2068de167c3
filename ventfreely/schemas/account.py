from typing import Optional
from pydantic import BaseModel, ConfigDict, StrictBool
from pydantic.alias_generators import to_camel


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    memory_enabled: Optional[StrictBool] = None
    reflection_memory_enabled: Optional[StrictBool] = None
