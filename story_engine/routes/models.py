"""Pydantic request models for API endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field

Gender = Literal["Male", "Female", "Other", "Unknown"]


class RegisterBody(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    name: str = ""
    password: str


class LoginBody(BaseModel):
    email: str
    password: str


class CreateCharacter(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    age: int | None = Field(default=None, ge=1, le=9999)
    gender: Gender | None = None
    appearance: dict[str, Any] = Field(default_factory=dict)
    personality: dict[str, Any] = Field(default_factory=dict)
    scents_aromas: dict[str, Any] = Field(default_factory=dict)
    background: str = ""
    avatar_url: str | None = None
    tags: list[str] = Field(default_factory=list)


class UpdateCharacter(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    age: int | None = Field(default=None, ge=1, le=9999)
    gender: Gender | None = None
    appearance: dict[str, Any] | None = None
    personality: dict[str, Any] | None = None
    scents_aromas: dict[str, Any] | None = None
    background: str | None = None
    avatar_url: str | None = None
    tags: list[str] | None = None


class ParseAttributesBody(BaseModel):
    text: str
    field_type: Literal["appearance", "personality", "scents"] = "appearance"


class CreateLocation(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    notable_features: list[str] = Field(default_factory=list)
    connected_locations: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class UpdateLocation(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    notable_features: list[str] | None = None
    connected_locations: list[str] | None = None
    tags: list[str] | None = None


class CreateSetting(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    world_type: str = ""
    history: str = ""
    tags: list[str] = Field(default_factory=list)


class UpdateSetting(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    world_type: str | None = None
    history: str | None = None
    tags: list[str] | None = None


class CreatePersona(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    personality: str = ""
    avatar_url: str | None = None
    tags: list[str] = Field(default_factory=list)


class UpdatePersona(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    personality: str | None = None
    avatar_url: str | None = None
    tags: list[str] | None = None


class CreateAdventure(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    character_id: str
    location_id: str | None = None
    setting_id: str | None = None
    persona_id: str | None = None
    user_name: str = "Player"
    adventure_type: str = "general"


class UpdateAdventure(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    user_name: str | None = None
    persona_id: str | None = None


class SystemPromptBody(BaseModel):
    system_prompt: str


class ChatBody(BaseModel):
    message: str = Field(min_length=1)


class UpdateMessage(BaseModel):
    content: str = Field(min_length=1)


class UpdateCharacterState(BaseModel):
    field: str = Field(min_length=1)
    value: Any
    context: str = ""


class AdminJobsBody(BaseModel):
    action: str
    older_than_days: int = Field(default=7, ge=0)
    job_id: str | None = None
