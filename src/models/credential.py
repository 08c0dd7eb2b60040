"""
Credential Model

A stored login for some service. The password is a SecretStr so it
never appears in reprs, logs or audit details; it is only revealed when
the ledger is serialized for storage.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_serializer


class Credential(BaseModel):
    """Service login with optional notes and tag."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    service: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=1, max_length=200)
    password: SecretStr
    description: str = ""
    additional_details: str = ""
    tag: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @field_serializer("password", when_used="json")
    def reveal_for_storage(self, v: SecretStr) -> str:
        return v.get_secret_value()

    def to_log_dict(self) -> dict:
        """Fields safe to log."""
        return {
            "credential_id": str(self.id),
            "service": self.service,
            "tag": self.tag,
        }
