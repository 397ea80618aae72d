"""Data models for jobs and target configuration."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """Wire encodings a job payload can be written with."""
    JSON = "json"
    XML = "xml"

    @property
    def mime_type(self) -> str:
        return "application/" + self.value


class AuthType(str, Enum):
    """Authorization schemes supported against the target system."""
    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"
    OAUTH2 = "oauth2"


class Job(BaseModel):
    """A payload to deliver to one remote object."""
    uid: str = Field(min_length=1)
    data: Any = None
    content_type: Optional[ContentType] = None

    class Config:
        use_enum_values = False


class PendingJob(BaseModel):
    """A job that has been accepted but not yet written.

    Serialized with the capitalised keys of the on-disk snapshot format.
    """
    job: Job = Field(alias="Job")
    created_at: datetime = Field(default_factory=datetime.utcnow, alias="CreatedAt")
    attempts: int = Field(default=0, ge=0, alias="Attempts")

    class Config:
        populate_by_name = True


class AuthConfig(BaseModel):
    """Credentials for the target system, discriminated by ``type``."""
    type: AuthType = AuthType.NONE
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    token_url: Optional[str] = None
    refresh_token: Optional[str] = None


class EndpointConfig(BaseModel):
    """Endpoint templates, relative to the target's base URL."""
    check: str = ""
    write: str = ""
    revision: Optional[str] = None


class TargetConfig(BaseModel):
    """Settings for the one remote system jobs are delivered to."""
    name: str = "default"
    base_url: str = ""
    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)
    content_type: Optional[ContentType] = None
    auth: AuthConfig = Field(default_factory=AuthConfig)
    min_workers: int = 5
    max_workers: int = 10
    repetitions: int = Field(default=0, ge=0)
    timeout: float = 30.0
    revision_field: str = "latest_revision"
    user_agent: str = "jobrelay/1.0"

    class Config:
        frozen = True
