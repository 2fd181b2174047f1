"""Stock alert threshold settings."""
from sqlalchemy import Column, String, Numeric, ForeignKey, UniqueConstraint
from deepstaq.database import Base, IdType


class AlertSetting(Base):
    """Global (per godown) EMPTY/LOW thresholds."""

    __tablename__ = 'alert_settings'
    __table_args__ = (
        UniqueConstraint('godown_id', 'user_id', name='uq_alert_settings_godown_user'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False)
    godown_id = Column(IdType, ForeignKey('godown.id', ondelete='CASCADE'), nullable=False)
    empty_threshold = Column(Numeric(14, 3), nullable=False, default=0)
    low_threshold = Column(Numeric(14, 3), nullable=False, default=3)

    def __repr__(self):
        return f"<AlertSetting(godown_id={self.godown_id}, empty={self.empty_threshold}, low={self.low_threshold})>"


class UnitAlertSetting(Base):
    """Unit-type override of the godown thresholds."""

    __tablename__ = 'unit_alert_settings'
    __table_args__ = (
        UniqueConstraint('godown_id', 'user_id', 'unit_type_id', name='uq_unit_alert_settings_godown_user_unit'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False)
    godown_id = Column(IdType, ForeignKey('godown.id', ondelete='CASCADE'), nullable=False)
    unit_type_id = Column(IdType, ForeignKey('unit_type.id', ondelete='CASCADE'), nullable=False)
    empty_threshold = Column(Numeric(14, 3), nullable=False, default=0)
    low_threshold = Column(Numeric(14, 3), nullable=False, default=3)

    def __repr__(self):
        return f"<UnitAlertSetting(unit_type_id={self.unit_type_id}, empty={self.empty_threshold}, low={self.low_threshold})>"
