"""
Centralized policy helpers for employer verification and posting rules.

Pure functions over already-gathered facts. Route handlers and the
entitlement engine query the database and pass derived values (verified
document flag, active posting count) in; nothing here touches the ledger.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from jobgate.core.roles import SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER

# Stable denial reasons
INSUFFICIENT_ROLE = "insufficient role"
LIMIT_EXCEEDED = "limit exceeded"
NOT_VERIFIED = "not verified"
PLACEMENT_RESTRICTED = "placement restricted"

VERIFIED_STATUSES = ("verified", "approved", "active")
JOB_POSTING_ROLES = (SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER)


@dataclass(frozen=True)
class Decision:
    """
    Result of a policy or entitlement check.

    limited=True means allowed but operating under a restriction, e.g. an
    unverified employer who should be nudged to complete verification.
    source is "subscription" or "credit" when a metered check decided which
    balance would pay for the action.
    """
    allowed: bool
    limited: bool = False
    reason: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "limited": self.limited,
            "reason": self.reason,
            "message": self.message,
            "source": self.source,
        }


def allow(limited: bool = False, message: Optional[str] = None, source: Optional[str] = None) -> Decision:
    return Decision(allowed=True, limited=limited, message=message, source=source)


def deny(reason: str, message: Optional[str] = None) -> Decision:
    return Decision(allowed=False, reason=reason, message=message or reason)


def is_super_admin(user: Any) -> bool:
    return user is not None and getattr(user, "role", None) == SUPER_ADMIN


def is_verified(user: Any, verified_document: Optional[bool] = None) -> bool:
    """
    Check verification state.

    A verified document on file is authoritative; without one the account's
    verification status decides.
    """
    if verified_document is None:
        verified_document = bool(getattr(user, "has_verified_document", False))
    if verified_document:
        return True
    if user is None:
        return False
    status = str(getattr(user, "verification_status", None) or "").lower()
    return status in VERIFIED_STATUSES


def can_create_job(
    user: Any,
    verified: bool = False,
    active_count: int = 0,
    job_data: Optional[Mapping[str, Any]] = None,
) -> Decision:
    """
    Posting rules layered on top of the metered job_posting entitlement.

    Unverified accounts may hold one non-closed posting and may not post
    placement or placement-fee jobs.
    """
    if is_super_admin(user):
        return allow()

    if user is None or getattr(user, "role", None) not in JOB_POSTING_ROLES:
        return deny(INSUFFICIENT_ROLE, "Insufficient permissions to post jobs")

    if is_verified(user, verified or None):
        return allow()

    if active_count >= 1:
        return deny(
            NOT_VERIFIED,
            "Account not verified - limit of 1 active posting for unverified accounts",
        )

    job_data = job_data or {}
    if job_data.get("has_placement_fee") is True:
        return deny(
            PLACEMENT_RESTRICTED,
            "Account not verified - placement fees are restricted to verified employers",
        )
    if job_data.get("is_placement") is True:
        return deny(
            PLACEMENT_RESTRICTED,
            "Account not verified - placement job types require verification",
        )

    return allow(
        limited=True,
        message="Unverified account - some features restricted until verification",
    )


def can_manage_job(user: Any, job: Any) -> bool:
    """Poster, company owner or super admin."""
    return can_generate_shortlink(user, job)


def can_generate_shortlink(user: Any, job: Any) -> bool:
    if user is None:
        return False
    if is_super_admin(user):
        return True
    if job is None:
        return False
    user_id = getattr(user, "id", None)
    if getattr(job, "posted_by_id", None) is not None and job.posted_by_id == user_id:
        return True
    company = getattr(job, "company", None)
    if company is not None and getattr(company, "created_by_id", None) == user_id:
        return True
    return False


def can_view_contact_details(viewer: Any, owner: Any) -> bool:
    if viewer is None:
        return False
    if owner is None:
        # public data
        return True
    viewer_id = getattr(viewer, "id", None)
    if viewer_id is not None and viewer_id == getattr(owner, "id", None):
        return True
    if is_super_admin(viewer):
        return True
    return is_verified(viewer)


def can_reveal_resume(user: Any) -> bool:
    """Resume database reveals require a verified account."""
    if user is None:
        return False
    if is_super_admin(user):
        return True
    return is_verified(user)
