from sqlalchemy import Column, String, DateTime, Boolean, Integer, JSON
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class CompanyEntity(Base):
    __tablename__ = "companies"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String(255), nullable=True)

    # Billing customer in the payment provider, written once
    stripe_customer_id = Column(String(255), nullable=True, unique=True, index=True)
    # Provider subscription ids; one in steady state
    subscription_ids = Column(JSON, nullable=False, default=list)
    # Subscriptions the provider reported deleted; never applied again
    ended_subscription_ids = Column(JSON, nullable=False, default=list)

    subscription_status = Column(String(32), nullable=True)
    subscription_plan = Column(String(32), nullable=True)
    subscription_period = Column(String(16), nullable=True)
    # Billing period end for paid plans, trial end for trials
    subscription_end = Column(DateTime(timezone=True), nullable=True)
    trial_start_date = Column(DateTime(timezone=True), nullable=True)

    max_seats = Column(Integer, nullable=False, default=10, server_default="10")
    seated_member_ids = Column(JSON, nullable=False, default=list)

    deleted = Column(
        Boolean, nullable=False, default=False, server_default="false", index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
