"""
Script to put a user on a subscription plan.
Run: python -m scripts.activate_plan user@example.com enterprise [--yearly] [--trial]
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from jobgate.db.session import SessionLocal
from jobgate.db.models.user import User
from jobgate.core.errors import MeteringError
from jobgate.services.plan_service import seed_catalog
from jobgate.services.subscription_service import activate_subscription
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def activate_plan(email: str, plan_type: str, billing_cycle: str = "monthly", trial: bool = False) -> bool:
    """Supersede the user's live subscription with `plan_type`."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            logger.error(f"User {email} not found")
            return False
        logger.info(f"Found existing user: {email} (ID: {user.id})")

        seed_catalog(db)
        subscription = activate_subscription(
            db,
            user.id,
            plan_type=plan_type,
            billing_cycle=billing_cycle,
            trial=trial,
        )
        logger.info(
            f"Successfully set user {email} to {plan_type} plan "
            f"(subscription {subscription.id}, period ends {subscription.current_period_end.isoformat()})"
        )
        return True
    except (ValueError, MeteringError) as e:
        logger.error(f"Error activating plan: {e}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Activate a subscription plan for a user")
    parser.add_argument("email")
    parser.add_argument("plan_type", choices=["free", "basic", "premium", "enterprise"])
    parser.add_argument("--yearly", action="store_true", help="Yearly billing cycle")
    parser.add_argument("--trial", action="store_true", help="Start the plan's trial period")
    args = parser.parse_args()

    if args.plan_type == "free":
        cycle = "free"
    else:
        cycle = "yearly" if args.yearly else "monthly"

    if activate_plan(args.email, args.plan_type, cycle, args.trial):
        print(f"\n[SUCCESS] User {args.email} is now on the {args.plan_type} plan")
    else:
        print(f"\n[ERROR] Failed to activate {args.plan_type} for {args.email}")
        sys.exit(1)
