"""Talent applications and talent assignment.

A talent applies to an open (draft, unassigned) project. The client accepts
one applicant: the applicant's user becomes the project's talent, the project
moves to ``active``, the chosen application is marked accepted and every other
pending application rejected. A project keeps its talent once assigned;
accepting a second applicant is refused.
"""
import logging
from typing import Optional

from common.models import (
    ApplicantStatus,
    MessageRole,
    ProjectStatus,
    UserRole,
)

from .access import authorize, require_user
from .commands import (
    AcceptApplicantCommand,
    ApplicationCommand,
    Rejected,
    TransitionResult,
    parse_command,
)
from .errors import Forbidden, NotFound
from .models import Applicant, new_id, utcnow
from .narration import emit_system_message, talent_assigned_body
from .store import WorkspaceStore

logger = logging.getLogger(__name__)


def submit_application(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    proposal: str,
    budget: Optional[str] = None,
    timeline: Optional[str] = None,
    links: Optional[str] = None,
) -> TransitionResult:
    """Talent applies to a draft project that has no talent yet.

    Returns a rejected result when the project is not open or the caller
    already applied.
    """
    user_id = require_user(user_id)

    command = parse_command(ApplicationCommand, {
        "project_id": project_id,
        "proposal": proposal,
        "budget": budget,
        "timeline": timeline,
        "links": links,
    })
    if isinstance(command, Rejected):
        logger.debug(f"Ignored application: {command.reason}")
        return TransitionResult.rejected(command.reason)

    user = store.get_user(user_id)
    if user is None or not user.is_active:
        raise Forbidden(f"User {user_id} cannot apply")
    if user.role != UserRole.TALENT.value:
        raise Forbidden(f"User {user_id} is not a talent")

    project = store.get_project(command.project_id)
    if project is None:
        raise NotFound(f"Project {command.project_id} not found")
    if project.client_id == user_id:
        raise Forbidden(f"User {user_id} owns project {command.project_id}")

    if project.status != ProjectStatus.DRAFT.value or project.talent_id is not None:
        reason = f"Project {command.project_id} is not accepting applications"
        logger.info(f"Ignored application: {reason}")
        return TransitionResult.rejected(reason)

    with store.atomic():
        if store.find_application(command.project_id, user_id) is not None:
            reason = f"User {user_id} already applied to project {command.project_id}"
            logger.info(f"Ignored application: {reason}")
            return TransitionResult.rejected(reason)

        applicant = store.insert(Applicant(
            id=new_id(),
            project_id=command.project_id,
            user_id=user_id,
            proposal=command.proposal,
            budget=command.budget,
            timeline=command.timeline,
            relevant_links=command.links,
            status=ApplicantStatus.PENDING.value,
            created_at=utcnow(),
        ))

    logger.info(f"Application {applicant.id} by {user_id} on project {command.project_id}")
    return TransitionResult(applied=True, entity_id=applicant.id)


def list_applicants(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
) -> list[Applicant]:
    """Applications to a project, oldest first. Client only."""
    user_id = require_user(user_id)
    authorize(store, project_id, user_id, MessageRole.CLIENT)
    return store.list_applicants(project_id)


def accept_applicant(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    applicant_id: str,
) -> TransitionResult:
    """Client assigns the applicant's user as the project's talent.

    Reassignment is refused: once a project has a talent, further accepts
    return a rejected result and write nothing.
    """
    user_id = require_user(user_id)

    command = parse_command(AcceptApplicantCommand, {
        "project_id": project_id,
        "applicant_id": applicant_id,
    })
    if isinstance(command, Rejected):
        logger.debug(f"Ignored accept: {command.reason}")
        return TransitionResult.rejected(command.reason)

    project = authorize(store, command.project_id, user_id, MessageRole.CLIENT)

    with store.atomic():
        applicant = store.get_applicant(command.project_id, command.applicant_id)
        if applicant is None:
            raise NotFound(
                f"Applicant {command.applicant_id} not found in project {command.project_id}"
            )

        if project.talent_id is not None:
            reason = f"Project {command.project_id} already has talent {project.talent_id}"
            logger.info(f"Ignored accept: {reason}")
            return TransitionResult.rejected(reason)
        if project.status != ProjectStatus.DRAFT.value:
            reason = f"Project {command.project_id} is {project.status}"
            logger.info(f"Ignored accept: {reason}")
            return TransitionResult.rejected(reason)
        if applicant.status != ApplicantStatus.PENDING.value:
            reason = f"Applicant {applicant.id} is {applicant.status}"
            logger.info(f"Ignored accept: {reason}")
            return TransitionResult.rejected(reason)

        store.assign_talent(project, applicant.user_id)
        for other in store.list_applicants(command.project_id):
            if other.id != applicant.id and other.status == ApplicantStatus.PENDING.value:
                store.set_applicant_status(other, ApplicantStatus.REJECTED.value)
        store.set_applicant_status(applicant, ApplicantStatus.ACCEPTED.value)

        talent = store.get_user(applicant.user_id)
        name = (talent.name or talent.email) if talent is not None else applicant.user_id
        message = emit_system_message(store, command.project_id, talent_assigned_body(name))

    logger.info(
        f"Project {command.project_id}: applicant {applicant.id} accepted, "
        f"talent {applicant.user_id} assigned"
    )
    return TransitionResult(applied=True, entity_id=applicant.id, message_id=message.id)
