from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from jobgate.db.base import Base
from jobgate.core.plan_catalog import package_kind, PackageKind


class CreditPackage(Base):
    """
    Purchasable credit bundle.

    credit_type "bundle" carries bundle_config (credit type -> amount);
    any other credit_type grants credit_amount + bonus_credits of that type.
    """
    __tablename__ = "credit_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    credit_type = Column(String, nullable=False, index=True)
    credit_amount = Column(Integer, nullable=False, default=0)
    bonus_credits = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    validity_days = Column(Integer, nullable=True)
    bundle_config = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def kind(self) -> PackageKind:
        """Typed view: SimplePackage or BundlePackage."""
        return package_kind(self.credit_type, self.credit_amount, self.bonus_credits, self.bundle_config)
