from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ATTRIBUTE_ID_PATTERN = r"^[a-z][a-z0-9_]*$"


class AttributeConfig(BaseModel):
    """A single scorable dimension of a contest rubric."""

    id: str = Field(pattern=ATTRIBUTE_ID_PATTERN)
    label: str = Field(min_length=1)
    description: str | None = None
    min: float = 0
    max: float = 10

    model_config = ConfigDict(extra="ignore")

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("label must be a non-empty string")
        return value

    @model_validator(mode="after")
    def _range_is_ordered(self) -> "AttributeConfig":
        if self.min >= self.max:
            raise ValueError(f"{self.id}: min must be less than max")
        return self


class ContestConfig(BaseModel):
    """Shape of a contest: its topic and the ordered rubric judges score against."""

    topic: str = Field(min_length=1)
    attributes: list[AttributeConfig] = Field(min_length=1)
    entry_label: str = Field(default="Entry", alias="entryLabel")
    entry_label_plural: str = Field(default="Entries", alias="entryLabelPlural")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic is required and must be a non-empty string")
        return value

    @model_validator(mode="after")
    def _unique_attribute_ids(self) -> "ContestConfig":
        seen: set[str] = set()
        for index, attr in enumerate(self.attributes):
            if attr.id in seen:
                raise ValueError(f'attributes[{index}]: duplicate id "{attr.id}"')
            seen.add(attr.id)
        return self

    @property
    def attribute_ids(self) -> list[str]:
        return [attr.id for attr in self.attributes]

    def attribute(self, attribute_id: str) -> AttributeConfig | None:
        return next((a for a in self.attributes if a.id == attribute_id), None)
