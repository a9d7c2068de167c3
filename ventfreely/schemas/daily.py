from pydantic import BaseModel, ConfigDict, Field, AliasChoices


class DailySubmit(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    # The web client sends camelCase, older mobile builds send snake_case.
    positive_text: str = Field(
        min_length=3,
        max_length=1000,
        validation_alias=AliasChoices("positiveText", "positive_text"),
    )
    emotion: str = Field(min_length=1, max_length=32)
    energy: str = Field(min_length=1, max_length=32)
