"""Godown (warehouse) model."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from deepstaq.database import Base, IdType


class Godown(Base):
    """Godown - a stock location owned by a tenant."""

    __tablename__ = 'godown'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships (deleting a godown removes everything stored in it)
    unit_types = relationship('UnitType', back_populates='godown', cascade='all, delete-orphan')
    companies = relationship('Company', back_populates='godown', cascade='all, delete-orphan')
    products = relationship('Product', back_populates='godown', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Godown(id={self.id}, name='{self.name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
