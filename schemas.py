from typing import Any

from pydantic import BaseModel, ConfigDict

# Request bodies accept any JSON value and keep every field optional, so that
# missing fields are reported together by the validation layer rather than
# rejected one by one. Values are stored as they were sent.


# Schema for a new user registration
class UserCreate(BaseModel):
    name: Any = None
    email: Any = None
    password: Any = None
    phone: Any = None
    age: Any = None
    address: Any = None


# Schema for a user login
class UserLogin(BaseModel):
    email: Any = None
    password: Any = None


# User record without the password hash
class UserPublic(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Any = None
    email: Any
    phone: Any = None
    age: Any = None
    address: Any = None


# Schema for the token response
class Token(BaseModel):
    token: str


class Message(BaseModel):
    message: str


class TaskBase(BaseModel):
    title: Any = None
    content: Any = None
    category: Any = None
    priority: Any = None
    tags: Any = None
    status: Any = None
    date: Any = None


# Body for both create and update. Only task fields are accepted, so an update
# can never rewrite a task's id or owner.
class TaskCreate(TaskBase):
    pass


class Task(TaskBase):
    model_config = ConfigDict(extra="allow")

    id: int
    email: Any
