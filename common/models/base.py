"""Shared status enumerations.

Stored as plain strings in the database; the enums are the single source of
the allowed values.
"""
from enum import Enum


class ProjectStatus(str, Enum):
    DRAFT = 'draft'              # Created, not yet published
    ACTIVE = 'active'            # Talent assigned, work under way
    MAINTENANCE = 'maintenance'  # Delivered, in support period
    COMPLETED = 'completed'      # Closed by client
    CANCELLED = 'cancelled'      # Abandoned


class MilestoneStatus(str, Enum):
    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'      # Talent submitted for review
    APPROVED = 'approved'        # Client accepted


class DeliveryStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REVISION = 'revision'


class ApplicantStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'      # Another applicant was accepted


class MessageRole(str, Enum):
    CLIENT = 'client'
    TALENT = 'talent'
    SYSTEM = 'system'


class UserRole(str, Enum):
    CLIENT = 'client'
    TALENT = 'talent'
    COMPANY = 'company'
    SUPER_ADMIN = 'super_admin'


TERMINAL_PROJECT_STATUSES = {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}
