"""
User API endpoints.

Registers community members and looks them up by handle.
"""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from cardledger.api.deps import SessionFactory
from cardledger.ledger.users import UserDirectory
from cardledger.models.inventory import User

router = APIRouter(prefix="/users", tags=["users"])


class UserResponse(BaseModel):
    """Response model for a user."""

    id: int
    handle: str
    email: str = ""

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(id=user.id, handle=user.handle, email=user.email)


class UserCreateRequest(BaseModel):
    """Request model for registering a user."""

    handle: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Stable external handle (username or chat-platform id)",
        examples=["U024BE7LH"],
    )
    email: str = Field(default="", max_length=255)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(request: UserCreateRequest, factory: SessionFactory) -> UserResponse:
    """Register a new user. Handles are unique."""
    user = await UserDirectory(factory).add_user(request.handle, request.email)
    return UserResponse.from_model(user)


@router.get("/{handle}", response_model=UserResponse)
async def get_user(handle: str, factory: SessionFactory) -> UserResponse:
    """Get a user by handle."""
    user = await UserDirectory(factory).get_user_by_handle(handle)
    return UserResponse.from_model(user)
