"""
Staff applications — a citizen asks to become staff for a district; an
admin accepts (promoting the account) or rejects. Both outcomes are final.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import (ConflictError, InvalidStateError,
                                          InvalidTransitionError,
                                          NotFoundError)
from civicconnect.models.enums import ApplicationStatus, Role
from civicconnect.models.staff_application import StaffApplication
from civicconnect.repositories.applications import StaffApplicationRepository
from civicconnect.repositories.users import UserRepository
from civicconnect.services import timeline
from civicconnect.services.access import Action, Actor, ensure_authorized

logger = logging.getLogger(__name__)


async def submit_application(
    db: AsyncSession,
    actor: Actor,
    *,
    name: str,
    region: str,
    district: str,
    phone: str | None = None,
) -> StaffApplication:
    ensure_authorized(actor, Action.APPLY_FOR_STAFF)
    if actor.role is not Role.CITIZEN:
        raise InvalidStateError("Only citizens can apply to become staff")

    applications = StaffApplicationRepository(db)
    if await applications.find_pending_for(actor.email) is not None:
        raise ConflictError("You already have a pending staff application")

    application = await applications.insert(
        StaffApplication(
            email=actor.email,
            name=name,
            phone=phone,
            region=region,
            district=district,
            status=ApplicationStatus.PENDING.value,
        )
    )
    await timeline.append_application_event(
        db,
        application.id,
        status=ApplicationStatus.PENDING,
        message=f"Application submitted for {district}",
        actor=actor,
    )
    await db.commit()
    logger.info("Staff application %d submitted by %s", application.id, actor.email)
    return await applications.get(application.id)


async def list_applications(
    db: AsyncSession, actor: Actor, status: str | None = None
) -> list[StaffApplication]:
    applications = StaffApplicationRepository(db)
    if actor.role is Role.ADMIN:
        return await applications.list(status=status)
    return await applications.list(status=status, email=actor.email)


async def review_application(
    db: AsyncSession,
    application_id: int,
    actor: Actor,
    decision: ApplicationStatus,
    note: str | None = None,
) -> StaffApplication:
    ensure_authorized(actor, Action.REVIEW_STAFF_APPLICATION)
    applications = StaffApplicationRepository(db)
    application = await applications.get_for_update(application_id)
    if application is None:
        raise NotFoundError("Staff application not found")

    if decision is ApplicationStatus.PENDING:
        raise InvalidTransitionError("An application can only be accepted or rejected")
    if application.status != ApplicationStatus.PENDING.value:
        raise InvalidTransitionError(f"Application is already {application.status}")

    changed = await applications.update_where(
        application_id, ApplicationStatus.PENDING.value, status=decision.value
    )
    if not changed:
        raise InvalidTransitionError("Application was reviewed concurrently")

    if decision is ApplicationStatus.ACCEPTED:
        promoted = await UserRepository(db).update_where(
            application.email,
            role=Role.STAFF.value,
            region=application.region,
            district=application.district,
        )
        if not promoted:
            await db.rollback()
            raise NotFoundError("Applicant account not found")

    verb = "accepted" if decision is ApplicationStatus.ACCEPTED else "rejected"
    message = f"Application {verb} by admin"
    if note and note.strip():
        message = f"{message}: {note.strip()}"
    await timeline.append_application_event(
        db, application_id, status=decision, message=message, actor=actor
    )
    await db.commit()
    logger.info("Staff application %d %s by %s", application_id, verb, actor.email)
    return await applications.get(application_id)
