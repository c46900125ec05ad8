"""
Subscription tiers and credit packages.

Single source of truth for the default catalog that is seeded into the
database, and for the mapping between metered resource types, plan limit
columns and purchasable credit types.

A limit of 0 means unlimited for that resource.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

# Metered resource types
RESOURCE_TYPES: List[str] = [
    "job_posting",
    "resume_view",
    "direct_application",
    "ai_usage",
    "featured_job",
]

# Plan column holding the per-period limit of each resource
RESOURCE_LIMIT_FIELDS: Dict[str, str] = {
    "job_posting": "max_job_postings",
    "featured_job": "max_featured_jobs",
    "resume_view": "max_resume_views",
    "direct_application": "max_direct_applications",
    "ai_usage": "max_ai_credits",
}

# Credit type spent once the plan allowance of a resource is exhausted
RESOURCE_CREDIT_TYPES: Dict[str, str] = {
    "resume_view": "resume_contact",
    "ai_usage": "ai_credit",
    "job_posting": "job_posting",
    "featured_job": "featured_job",
    "direct_application": "direct_application",
}

CREDIT_TYPES: List[str] = sorted(set(RESOURCE_CREDIT_TYPES.values()))
BUNDLE = "bundle"

UNLIMITED = 0

DEFAULT_SUBSCRIPTION_PLANS: Dict[str, Dict[str, Any]] = {
    "free": {
        "name": "Free",
        "description": "Basic job posting with limited features",
        "price_monthly": 0,
        "price_yearly": 0,
        "features": {
            "job_search": True,
            "basic_filters": True,
            "job_posting_access": True,
            "resume_search_access": True,
        },
        "max_job_postings": 1,
        "max_featured_jobs": 0,
        "max_resume_views": 5,
        "max_direct_applications": 10,
        "max_ai_credits": 0,
        "max_ai_job_matches": 0,
        "priority_support": False,
        "advanced_analytics": False,
        "custom_branding": False,
        "trial_days": 0,
    },
    "basic": {
        "name": "Basic",
        "description": "Enhanced job posting with more features",
        "price_monthly": 299,
        "price_yearly": 2990,
        "features": {
            "job_search": True,
            "advanced_filters": True,
            "job_posting_access": True,
            "resume_search_access": True,
            "basic_analytics": True,
        },
        "max_job_postings": 5,
        "max_featured_jobs": 1,
        "max_resume_views": 50,
        "max_direct_applications": 100,
        "max_ai_credits": 10,
        "max_ai_job_matches": 20,
        "priority_support": False,
        "advanced_analytics": False,
        "custom_branding": False,
        "trial_days": 7,
    },
    "premium": {
        "name": "Premium",
        "description": "Full-featured plan with AI capabilities",
        "price_monthly": 599,
        "price_yearly": 5990,
        "features": {
            "job_search": True,
            "advanced_filters": True,
            "job_posting_access": True,
            "resume_search_access": True,
            "ai_job_matching": True,
            "priority_support": True,
            "advanced_analytics": True,
        },
        "max_job_postings": 25,
        "max_featured_jobs": 5,
        "max_resume_views": 200,
        "max_direct_applications": 500,
        "max_ai_credits": 50,
        "max_ai_job_matches": 100,
        "priority_support": True,
        "advanced_analytics": True,
        "custom_branding": False,
        "trial_days": 14,
    },
    "enterprise": {
        "name": "Enterprise",
        "description": "Unlimited access for large organizations",
        "price_monthly": 999,
        "price_yearly": 9990,
        "features": {
            "job_search": True,
            "advanced_filters": True,
            "job_posting_access": True,
            "resume_search_access": True,
            "ai_job_matching": True,
            "priority_support": True,
            "advanced_analytics": True,
            "custom_branding": True,
            "team_management": True,
        },
        "max_job_postings": UNLIMITED,
        "max_featured_jobs": UNLIMITED,
        "max_resume_views": UNLIMITED,
        "max_direct_applications": UNLIMITED,
        "max_ai_credits": UNLIMITED,
        "max_ai_job_matches": UNLIMITED,
        "priority_support": True,
        "advanced_analytics": True,
        "custom_branding": True,
        "trial_days": 30,
    },
}

DEFAULT_CREDIT_PACKAGES: List[Dict[str, Any]] = [
    {"name": "Resume Contact Starter", "description": "View 25 resume contacts",
     "credit_type": "resume_contact", "credit_amount": 25, "bonus_credits": 5,
     "price": 199, "validity_days": 90},
    {"name": "Resume Contact Pro", "description": "View 100 resume contacts",
     "credit_type": "resume_contact", "credit_amount": 100, "bonus_credits": 25,
     "price": 599, "validity_days": 180},
    {"name": "Resume Contact Enterprise", "description": "View 500 resume contacts",
     "credit_type": "resume_contact", "credit_amount": 500, "bonus_credits": 100,
     "price": 2499, "validity_days": 365},
    {"name": "AI Credit Starter", "description": "20 AI analysis credits",
     "credit_type": "ai_credit", "credit_amount": 20, "bonus_credits": 5,
     "price": 149, "validity_days": 90},
    {"name": "AI Credit Pro", "description": "100 AI analysis credits",
     "credit_type": "ai_credit", "credit_amount": 100, "bonus_credits": 25,
     "price": 599, "validity_days": 180},
    {"name": "AI Credit Enterprise", "description": "500 AI analysis credits",
     "credit_type": "ai_credit", "credit_amount": 500, "bonus_credits": 100,
     "price": 1999, "validity_days": 365},
    {"name": "Job Seeker Bundle", "description": "Resume contacts + AI credits bundle",
     "credit_type": BUNDLE, "credit_amount": 1, "bonus_credits": 0,
     "price": 399, "validity_days": 120,
     "bundle_config": {"resume_contact": 50, "ai_credit": 20}},
    {"name": "Professional Bundle", "description": "Enhanced bundle for active job seekers",
     "credit_type": BUNDLE, "credit_amount": 1, "bonus_credits": 0,
     "price": 899, "validity_days": 180,
     "bundle_config": {"resume_contact": 150, "ai_credit": 75}},
    {"name": "Ultimate Bundle", "description": "Complete package for serious job seekers",
     "credit_type": BUNDLE, "credit_amount": 1, "bonus_credits": 0,
     "price": 1899, "validity_days": 365,
     "bundle_config": {"resume_contact": 400, "ai_credit": 200}},
]


@dataclass(frozen=True)
class SimplePackage:
    """Package crediting a single credit type."""
    credit_type: str
    amount: int


@dataclass(frozen=True)
class BundlePackage:
    """Package crediting several credit types at once."""
    entries: Mapping[str, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))


PackageKind = Union[SimplePackage, BundlePackage]


def package_kind(
    credit_type: str,
    credit_amount: int,
    bonus_credits: int = 0,
    bundle_config: Optional[Dict[str, Any]] = None,
) -> PackageKind:
    """
    Build the typed variant of a stored credit package.

    Raises:
        ValueError: bundle without a usable config, unknown credit type,
            or a non-positive amount
    """
    if credit_type == BUNDLE:
        if not bundle_config or not isinstance(bundle_config, dict):
            raise ValueError("Invalid bundle configuration")
        entries = {}
        for entry_type, amount in bundle_config.items():
            if entry_type not in CREDIT_TYPES:
                raise ValueError(f"Unknown credit type in bundle: {entry_type}")
            if int(amount) <= 0:
                raise ValueError(f"Bundle amount for {entry_type} must be positive")
            entries[entry_type] = int(amount)
        return BundlePackage(entries=entries)

    if credit_type not in CREDIT_TYPES:
        raise ValueError(f"Unknown credit type: {credit_type}")
    total = int(credit_amount) + int(bonus_credits or 0)
    if total <= 0:
        raise ValueError("Package must grant at least one credit")
    return SimplePackage(credit_type=credit_type, amount=total)


def validate_resource_type(resource_type: str) -> str:
    """Return the resource type or raise ValueError if it is not metered."""
    if resource_type not in RESOURCE_TYPES:
        raise ValueError(
            f"Unknown resource type: {resource_type}. Must be one of {', '.join(RESOURCE_TYPES)}"
        )
    return resource_type


def credit_type_for(resource_type: str) -> str:
    """Credit type that backs a resource once its allowance runs out."""
    return RESOURCE_CREDIT_TYPES[validate_resource_type(resource_type)]


def get_plan_limit(plan_type: str, resource_type: str) -> int:
    """
    Get the per-period limit of a resource in a default plan.

    Args:
        plan_type: Plan type (free, basic, premium, enterprise)
        resource_type: Metered resource type

    Returns:
        Limit (0 for unlimited)
    """
    plan_type = plan_type.lower() if plan_type else "free"
    plan = DEFAULT_SUBSCRIPTION_PLANS.get(plan_type, DEFAULT_SUBSCRIPTION_PLANS["free"])
    return plan[RESOURCE_LIMIT_FIELDS[validate_resource_type(resource_type)]]


def is_unlimited(limit: Optional[int]) -> bool:
    """A limit of 0 (or a missing limit) is unbounded."""
    return not limit
