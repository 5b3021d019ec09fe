from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class User(BaseModel):
    """Profile returned by the auth endpoints and persisted under `userData`."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    name: str
    email: str
    created_at: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )

    def to_storage(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "createdAt": self.created_at}


class Session(BaseModel):
    """
    Authenticated session held in memory for the process lifetime.

    Fields
    - token: bearer token issued by the backend.
    - user: profile of the signed-in user.

    Notes
    - Persisted as two independent secure-store entries (`authToken`, `userData`).
      Both are written and deleted together; a token without a user is never
      exposed.
    """

    token: str
    user: User


__all__ = ["User", "Session"]
