from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.security import sanitize_html_text, validate_free_text


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        value = tag.strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


class DisasterCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    location_name: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    include_nearby: bool = False
    radius: int | None = None

    @field_validator("title")
    @classmethod
    def _title_is_plain_text(cls, value: str) -> str:
        if not validate_free_text(value, max_length=255):
            raise ValueError("must be non-blank text without control characters")
        return value.strip()

    @field_validator("location_name")
    @classmethod
    def _blank_location_is_absent(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        return _clean_tags(value) or []


class DisasterUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    location_name: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = None

    @field_validator("title")
    @classmethod
    def _title_is_plain_text(cls, value: str | None) -> str | None:
        if value is not None and not validate_free_text(value, max_length=255):
            raise ValueError("must be non-blank text without control characters")
        return value.strip() if value is not None else None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        return _clean_tags(value)

    @model_validator(mode="after")
    def _at_least_one_field(self) -> DisasterUpdate:
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self


class ReportCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    image_url: str | None = Field(default=None, max_length=2048)

    @field_validator("content")
    @classmethod
    def _escape_markup(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return sanitize_html_text(value.strip())
