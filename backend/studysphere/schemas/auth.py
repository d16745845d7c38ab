# studysphere/schemas/auth.py
from typing import Any, Dict, Optional

from pydantic import Field

from .base import CamelModel


class AuthUser(CamelModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        name = self.user_metadata.get("name")
        if name:
            return name
        if self.email:
            return self.email.split("@")[0]
        return "User"


class AuthSession(CamelModel):
    user: AuthUser
    access_token: Optional[str] = Field(default=None, exclude=True)
