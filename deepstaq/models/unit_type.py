"""Unit type model."""
from sqlalchemy import Column, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from deepstaq.database import Base, IdType


class UnitType(Base):
    """
    Unit type (box, bag, kg...) defined per godown.

    has_open_pieces flags whether loose quantities make sense for products in
    this unit. Ledger arithmetic is decimal regardless.
    """

    __tablename__ = 'unit_type'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    godown_id = Column(IdType, ForeignKey('godown.id', ondelete='CASCADE'), nullable=False)
    name = Column(String, nullable=False)
    has_open_pieces = Column(Boolean, nullable=False, default=False, server_default='false')

    # Relationships
    godown = relationship('Godown', back_populates='unit_types')

    def __repr__(self):
        return f"<UnitType(id={self.id}, name='{self.name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'godown_id': self.godown_id,
            'name': self.name,
            'has_open_pieces': bool(self.has_open_pieces),
        }
