"""Product model."""
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from deepstaq.database import Base, IdType


class Product(Base):
    """Product model."""

    __tablename__ = 'product'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    godown_id = Column(IdType, ForeignKey('godown.id', ondelete='CASCADE'), nullable=False)
    company_id = Column(IdType, ForeignKey('company.id'), nullable=False)
    unit_type_id = Column(IdType, ForeignKey('unit_type.id'), nullable=False)
    name = Column(String, nullable=False)
    sku = Column(String, nullable=True)
    # Balance before any recorded movement; base of every running-balance computation
    opening_stock = Column(Numeric(14, 3), nullable=False, default=0, server_default='0')
    min_stock_threshold = Column(Numeric(14, 3), nullable=False, default=0, server_default='0')
    cost_price = Column(Numeric(12, 2), nullable=True)
    selling_price = Column(Numeric(12, 2), nullable=True)
    # Bumped on every ledger mutation (optimistic concurrency on the movement history)
    ledger_version = Column(Integer, nullable=False, default=0, server_default='0')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    godown = relationship('Godown', back_populates='products')
    company = relationship('Company', foreign_keys=[company_id])
    unit_type = relationship('UnitType', foreign_keys=[unit_type_id])
    movements = relationship('StockMovement', back_populates='product', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'godown_id': self.godown_id,
            'company_id': self.company_id,
            'unit_type_id': self.unit_type_id,
            'name': self.name,
            'sku': self.sku,
            'opening_stock': float(self.opening_stock or 0),
            'min_stock_threshold': float(self.min_stock_threshold or 0),
            'cost_price': float(self.cost_price) if self.cost_price is not None else None,
            'selling_price': float(self.selling_price) if self.selling_price is not None else None,
            'companies': {'name': self.company.name} if self.company else None,
            'unit_types': {'name': self.unit_type.name} if self.unit_type else None,
        }
