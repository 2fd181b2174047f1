"""Company model."""
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from deepstaq.database import Base, IdType


class Company(Base):
    """Company (supplier/brand) a product belongs to."""

    __tablename__ = 'company'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    godown_id = Column(IdType, ForeignKey('godown.id', ondelete='CASCADE'), nullable=False)
    name = Column(String, nullable=False)

    # Relationships
    godown = relationship('Godown', back_populates='companies')

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'godown_id': self.godown_id,
            'name': self.name,
        }
