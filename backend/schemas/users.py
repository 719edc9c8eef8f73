# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base schemas; these add the cafe-specific fields

from uuid import UUID
from fastapi_users import schemas
from typing import Literal, Optional

UserRole = Literal["customer", "admin", "employee", "delivery"]


class UserRead(schemas.BaseUser[UUID]):
    name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = "customer"


class UserCreate(schemas.BaseUserCreate):
    # Public registration never chooses a role; staff roles are granted via PATCH /users/{id}
    name: Optional[str] = None
    phone: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None

    def create_update_dict(self):
        # Self-service updates (/users/me) must not promote a user
        data = super().create_update_dict()
        data.pop("role", None)
        return data
