"""Medication box models."""

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from medbox.database import Base
from medbox.models.user import utcnow


class MedicationBox(Base):
    """A container of medications tracked for inventory."""

    __tablename__ = "medication_boxes"

    id = Column(Integer, primary_key=True, index=True)
    box_number = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=False, default="")
    medications = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    status = Column(String(20), nullable=False, default="active")
    last_inventory_date = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(100), nullable=False)
    updated_by = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    # Relationships
    assignments = relationship(
        "BoxAssignment",
        back_populates="box",
        cascade="all, delete-orphan",
        order_by="BoxAssignment.user_id",
    )

    @property
    def assigned_to(self):
        return [assignment.user_id for assignment in self.assignments]

    def __repr__(self):
        return f"<MedicationBox(id={self.id}, box_number='{self.box_number}')>"


class BoxAssignment(Base):
    """Grants a standard user access to one box."""

    __tablename__ = "box_assignments"

    id = Column(Integer, primary_key=True)
    box_id = Column(Integer, ForeignKey("medication_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(30), nullable=False, index=True)

    box = relationship("MedicationBox", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint('box_id', 'user_id', name='uq_box_assignment'),
    )
