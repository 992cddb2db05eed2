"""Deployment data models."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

MAX_BUILD_COMMAND_LENGTH = 200
MAX_ENVIRONMENT_VARIABLES = 50
REDACTED_VALUE = "********"
OUTPUT_DIRECTORY_PATTERN = re.compile(r"^[a-zA-Z0-9_\-/]+$")


def utcnow() -> datetime:
    """Current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Supported publish platforms."""

    CLOUDFLARE_PAGES = "cloudflare-pages"
    VERCEL = "vercel"
    NETLIFY = "netlify"


class DeploymentStatus(str, Enum):
    """Deployment lifecycle status."""

    PENDING = "pending"
    BUILDING = "building"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED, DeploymentStatus.CANCELLED}
)


class LogLevel(str, Enum):
    """Severity of a deployment log entry."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single deployment log line."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel = LogLevel.INFO
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class DeploymentConfig(BaseModel):
    """Validated view of a caller's deployment configuration."""

    model_config = ConfigDict(extra="allow")

    platform: Platform
    build_command: str | None = Field(default=None, max_length=MAX_BUILD_COMMAND_LENGTH)
    output_directory: str | None = Field(default=None, pattern=OUTPUT_DIRECTORY_PATTERN.pattern)
    environment_variables: dict[str, str] = Field(
        default_factory=dict, max_length=MAX_ENVIRONMENT_VARIABLES
    )
    node_version: str | None = None


def config_issues(config: Any) -> list[str]:
    """Return human-readable problems with a configuration bag.

    An empty list means the configuration would be accepted.
    """
    if not isinstance(config, dict):
        return ["Configuration must be an object"]

    try:
        DeploymentConfig.model_validate(config)
    except PydanticValidationError as e:
        issues = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "configuration"
            if field == "platform" and error["type"] == "missing":
                issues.append("Platform is required")
            elif field == "platform":
                supported = ", ".join(p.value for p in Platform)
                issues.append(
                    f"Unsupported platform: {config.get('platform')!r} (supported: {supported})"
                )
            elif field == "build_command":
                issues.append(
                    f"Build command is too long (max {MAX_BUILD_COMMAND_LENGTH} characters)"
                )
            elif field == "output_directory":
                issues.append("Output directory contains invalid characters")
            elif field == "environment_variables" and error["type"] == "too_long":
                issues.append(
                    f"Too many environment variables (max {MAX_ENVIRONMENT_VARIABLES})"
                )
            else:
                issues.append(f"{field}: {error['msg']}")
        return issues

    return []


def redact_configuration(configuration: dict[str, Any]) -> dict[str, Any]:
    """Copy of a configuration bag with environment variable values masked."""
    redacted = dict(configuration)
    env = redacted.get("environment_variables")
    if isinstance(env, dict):
        redacted["environment_variables"] = {key: REDACTED_VALUE for key in env}
    return redacted


class PublishResult(BaseModel):
    """URLs returned by the publish backend."""

    url: str
    preview_url: str


class DeploymentRecord(BaseModel):
    """One deployment attempt and its current state."""

    id: UUID = Field(default_factory=uuid4)
    project_id: str
    status: DeploymentStatus = DeploymentStatus.PENDING
    platform: Platform

    # Stored verbatim, never interpreted beyond validation
    configuration: dict[str, Any] = Field(default_factory=dict)

    # Results
    url: str | None = None
    preview_url: str | None = None
    error: str | None = None

    # Rollback lineage
    is_rollback: bool = False
    rollback_from_id: UUID | None = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    logs: list[LogEntry] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class DeploymentResponse(BaseModel):
    """API response model for a deployment."""

    id: UUID
    project_id: str
    status: DeploymentStatus
    platform: Platform
    url: str | None = None
    preview_url: str | None = None
    error: str | None = None
    is_rollback: bool = False
    rollback_from_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    configuration: dict[str, Any] = Field(default_factory=dict)
    log_count: int = 0

    @classmethod
    def from_record(cls, record: DeploymentRecord) -> "DeploymentResponse":
        """Create response from a deployment record."""
        return cls(
            id=record.id,
            project_id=record.project_id,
            status=record.status,
            platform=record.platform,
            url=record.url,
            preview_url=record.preview_url,
            error=record.error,
            is_rollback=record.is_rollback,
            rollback_from_id=record.rollback_from_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
            configuration=redact_configuration(record.configuration),
            log_count=len(record.logs),
        )


class PlatformInfo(BaseModel):
    """Catalog entry for a supported platform."""

    id: Platform
    name: str
    description: str
    domain: str
    features: list[str] = Field(default_factory=list)
    limits: dict[str, str] = Field(default_factory=dict)


PLATFORM_CATALOG: dict[Platform, PlatformInfo] = {
    Platform.CLOUDFLARE_PAGES: PlatformInfo(
        id=Platform.CLOUDFLARE_PAGES,
        name="Cloudflare Pages",
        description="Fast, secure, and free static site hosting",
        domain="pages.dev",
        features=["Global CDN", "Automatic HTTPS", "Custom domains", "Preview deployments", "Edge functions"],
        limits={"builds": "500/month", "bandwidth": "100GB/month", "storage": "25GB"},
    ),
    Platform.VERCEL: PlatformInfo(
        id=Platform.VERCEL,
        name="Vercel",
        description="The platform for frontend developers",
        domain="vercel.app",
        features=["Global edge network", "Serverless functions", "Preview deployments", "Custom domains", "Analytics"],
        limits={"builds": "100/day", "bandwidth": "100GB/month", "storage": "1GB"},
    ),
    Platform.NETLIFY: PlatformInfo(
        id=Platform.NETLIFY,
        name="Netlify",
        description="Build, deploy, and manage modern web projects",
        domain="netlify.app",
        features=["Continuous deployment", "Form handling", "Split testing", "Custom domains", "Edge functions"],
        limits={"builds": "300/month", "bandwidth": "100GB/month", "storage": "1GB"},
    ),
}
