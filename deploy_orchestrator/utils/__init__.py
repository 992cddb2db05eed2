"""Utility functions for the deployment orchestrator."""

from deploy_orchestrator.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
