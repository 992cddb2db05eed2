"""Data models for the deployment orchestrator."""

from deploy_orchestrator.models.deployment import (
    PLATFORM_CATALOG,
    DeploymentConfig,
    DeploymentRecord,
    DeploymentResponse,
    DeploymentStatus,
    LogEntry,
    LogLevel,
    Platform,
    PlatformInfo,
    PublishResult,
    config_issues,
    redact_configuration,
)
from deploy_orchestrator.models.metrics import (
    DeploymentMetrics,
    MetricsBucket,
    TelemetrySample,
    TimeRange,
)

__all__ = [
    # Deployment models
    "DeploymentConfig",
    "DeploymentRecord",
    "DeploymentResponse",
    "DeploymentStatus",
    "LogEntry",
    "LogLevel",
    "Platform",
    "PlatformInfo",
    "PLATFORM_CATALOG",
    "PublishResult",
    "config_issues",
    "redact_configuration",
    # Metrics models
    "DeploymentMetrics",
    "MetricsBucket",
    "TelemetrySample",
    "TimeRange",
]
