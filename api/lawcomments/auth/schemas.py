"""Pydantic schemas for authenticated callers."""

from pydantic import BaseModel, ConfigDict


class AdminIdentity(BaseModel):
    """An authenticated administrator, as proven by an access token."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    name: str | None = None

    @property
    def display(self) -> str:
        """Identifier recorded as ``moderated_by``."""
        return self.email or self.id
