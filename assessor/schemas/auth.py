"""Pydantic schemas for registration and login."""
from pydantic import BaseModel, Field

from assessor.schemas.base import CamelSchema


class RegisterSchema(BaseModel):
    username: str = Field(min_length=1, max_length=120)
    email: str
    password: str


class LoginSchema(BaseModel):
    email: str
    password: str


class UserBriefSchema(BaseModel):
    id: int
    name: str
    level: str


class TokenOutSchema(BaseModel):
    token: str
    user: UserBriefSchema


class MeSchema(CamelSchema):
    id: int
    name: str
    email: str
    level: str
