"""
Taxonomy Models
Categories and brands referenced by stock items. They are maintained by
the catalogue side of the product; the ledger only resolves references.
"""
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Text, Index
from sqlalchemy.sql import func

from stockledger.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Category(Base):
    """
    Item category

    Preset categories have no owner and are visible to every tenant.
    """
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(36), nullable=True, index=True, doc="Owning tenant, NULL for presets")
    name = Column(String(100), nullable=False)
    description = Column(Text)
    is_preset = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    __table_args__ = (
        Index("ix_categories_owner_name", "owner_id", "name", unique=True),
    )

    def __repr__(self):
        return f"<Category(id='{self.id}', name='{self.name}')>"


class Brand(Base):
    """Manufacturer brand, owned by one tenant"""
    __tablename__ = "brands"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(36), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    website = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    __table_args__ = (
        Index("ix_brands_owner_name", "owner_id", "name", unique=True),
    )

    def __repr__(self):
        return f"<Brand(id='{self.id}', name='{self.name}')>"
