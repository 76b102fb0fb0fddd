"""
Ownership rules shared by company-scoped services.
Admins may act on any company; owners only on companies they own.
"""

import uuid

from buscai.errors import AppError
from buscai.schemas.common import Actor


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AppError(403, "forbidden", code="FORBIDDEN")


async def ensure_company_access(actor: Actor, company_repo, company_id: uuid.UUID):
    """Return the company when the actor may manage it."""
    company = await company_repo.get(company_id)
    if company is None:
        raise AppError(404, "company_not_found", code="NOT_FOUND")
    if actor.is_admin:
        return company
    if company.owner_id != actor.user_id:
        raise AppError(403, "forbidden", code="FORBIDDEN")
    return company


def resolve_company_id(actor: Actor, company_id=None) -> uuid.UUID:
    """Explicit company id, else the one bound to the actor."""
    resolved = company_id or actor.company_id
    if resolved is None:
        raise AppError(400, "company_not_linked")
    return resolved
