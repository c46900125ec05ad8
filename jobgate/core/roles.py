"""
User roles and which roles may use each metered resource.

The role on an actor is already resolved by the identity layer; nothing here
looks at emails or domains.
"""
from typing import Dict, FrozenSet, Optional

SUPER_ADMIN = "super_admin"
EMPLOYER_ADMIN = "employer_admin"
SUB_USER = "sub_user"
JOB_SEEKER = "job_seeker"

USER_ROLES = (SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER, JOB_SEEKER)

ROLE_LABELS: Dict[str, str] = {
    SUPER_ADMIN: "Super Administrator",
    EMPLOYER_ADMIN: "Employer Admin",
    SUB_USER: "Sub-user",
    JOB_SEEKER: "Job Seeker",
}

# Roles allowed per resource type. Super admin bypasses this table entirely.
RESOURCE_ROLES: Dict[str, FrozenSet[str]] = {
    "job_posting": frozenset({SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER}),
    "featured_job": frozenset({SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER}),
    "resume_view": frozenset({SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER}),
    "direct_application": frozenset({SUPER_ADMIN, JOB_SEEKER}),
    "ai_usage": frozenset({SUPER_ADMIN, EMPLOYER_ADMIN, SUB_USER, JOB_SEEKER}),
}


def role_allows(role: Optional[str], resource_type: str) -> bool:
    """Check whether a role may use a resource type at all."""
    if not role:
        return False
    return role in RESOURCE_ROLES.get(resource_type, frozenset())


def billing_owner_id(user_id: int, role: Optional[str], parent_user_id: Optional[int]) -> int:
    """
    Account whose subscription and credits are charged.

    Sub-users spend their main account's allowance.
    """
    if role == SUB_USER and parent_user_id:
        return parent_user_id
    return user_id
