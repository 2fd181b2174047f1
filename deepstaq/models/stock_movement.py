"""Stock Movement model."""
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, Text, Numeric, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from deepstaq.database import Base, IdType
import enum


class StockMovementType(enum.Enum):
    """Stock movement direction."""
    IN = "IN"
    OUT = "OUT"


def _utcnow():
    return datetime.utcnow()


class StockMovement(Base):
    """
    A dated IN/OUT transaction against one product.

    quantity is always strictly positive; the direction lives in `type` only.
    Ledger order is (movement_date, created_at, id).
    """

    __tablename__ = 'stock_movement'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_stock_movement_quantity_positive'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    product_id = Column(IdType, ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True)
    movement_date = Column(Date, nullable=False)
    type = Column(Enum(StockMovementType, name='stock_movement_type'), nullable=False)
    quantity = Column(Numeric(14, 3), nullable=False)
    note = Column(Text, nullable=True)
    # Python-side default keeps microsecond precision for same-day tie-breaking
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_by = Column(String(128), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    # Relationships
    product = relationship('Product', back_populates='movements')

    def __repr__(self):
        return f"<StockMovement(id={self.id}, type={self.type.value}, quantity={self.quantity})>"

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'movement_date': self.movement_date.isoformat(),
            'type': self.type.value,
            'quantity': float(self.quantity),
            'note': self.note,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'created_by': self.created_by,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
