"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel


class EditBody(BaseModel):
    text: str


class OrderBody(BaseModel):
    ids: list[str]


class MoveBody(BaseModel):
    from_index: int
    to_index: int


class ChapterBody(BaseModel):
    title: str
    description: str = ""
    position: int | None = None


class PublishBody(BaseModel):
    title: str | None = None
    description: str = ""
    id: str | None = None


class UpdateConfig(BaseModel):
    fixed_room: str | None = None
    font_family: str | None = None
    font_size: str | None = None
    character_name_size: str | None = None
    background: dict | None = None
