from decimal import Decimal
from sqlalchemy import Column, String, Boolean, Numeric, JSON, DateTime, CheckConstraint
from sqlalchemy.sql import func
from souq.core.db import Base

SETTINGS_ID = "singleton"


class AdminSettings(Base):
    __tablename__ = "admin_settings"

    id = Column(String(20), primary_key=True, default=SETTINGS_ID)
    free_mode = Column(Boolean, nullable=False, default=False)
    global_commission_rate = Column(Numeric(5, 4), nullable=False, default=Decimal("0.05"))
    ranking_weights = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            (global_commission_rate >= 0) & (global_commission_rate <= 1),
            name="check_commission_rate_fraction",
        ),
    )
