"""Shared enumerations across modules."""

from .base import (
    ApplicantStatus,
    DeliveryStatus,
    MessageRole,
    MilestoneStatus,
    ProjectStatus,
    TERMINAL_PROJECT_STATUSES,
    UserRole,
)

__all__ = [
    'ApplicantStatus',
    'DeliveryStatus',
    'MessageRole',
    'MilestoneStatus',
    'ProjectStatus',
    'TERMINAL_PROJECT_STATUSES',
    'UserRole',
]
