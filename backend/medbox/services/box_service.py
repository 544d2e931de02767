"""Medication box data access."""

import logging
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from medbox.errors import DuplicateBoxNumber, NotFound
from medbox.models.box import BoxAssignment, MedicationBox
from medbox.models.user import utcnow
from medbox.schemas.auth import Identity
from medbox.schemas.box import BoxCreate, BoxUpdate, Medication

log = logging.getLogger(__name__)

# Columns a client may change through update_box
UPDATABLE_FIELDS = (
    "box_number",
    "description",
    "location",
    "medications",
    "status",
    "last_inventory_date",
)
NULLABLE_FIELDS = {"last_inventory_date"}


def _serialize_medications(medications: List[Medication]) -> list:
    return [med.model_dump(mode="json", by_alias=True) for med in medications]


def _box_number_taken(db: Session, box_number: str, exclude_id: int = None) -> bool:
    query = select(MedicationBox.id).where(MedicationBox.box_number == box_number)
    if exclude_id is not None:
        query = query.where(MedicationBox.id != exclude_id)
    return db.scalar(query) is not None


def _commit(db: Session, box: MedicationBox) -> MedicationBox:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateBoxNumber(box.box_number) from exc
    db.refresh(box)
    return box


def list_boxes(db: Session, identity: Identity) -> List[MedicationBox]:
    """Admins see every box; other users only the boxes assigned to them."""
    query = select(MedicationBox).options(selectinload(MedicationBox.assignments))
    if not identity.is_admin:
        query = query.join(BoxAssignment).where(BoxAssignment.user_id == identity.uid)
    return list(db.scalars(query.order_by(MedicationBox.box_number)).unique())


def get_box(db: Session, box_id: int) -> MedicationBox:
    box = db.get(MedicationBox, box_id)
    if box is None:
        raise NotFound("Box not found")
    return box


def create_box(db: Session, payload: BoxCreate, created_by: str) -> MedicationBox:
    if _box_number_taken(db, payload.box_number):
        raise DuplicateBoxNumber(payload.box_number)

    box = MedicationBox(
        box_number=payload.box_number,
        description=payload.description or "",
        location=payload.location or "",
        medications=_serialize_medications(payload.medications),
        status="active",
        last_inventory_date=None,
        created_by=created_by,
        updated_by=created_by,
    )
    db.add(box)
    box = _commit(db, box)
    log.info(f"Box '{box.box_number}' (id={box.id}) created by {created_by}")
    return box


def update_box(db: Session, box: MedicationBox, payload: BoxUpdate, updated_by: str) -> Tuple[MedicationBox, List[str]]:
    """Apply allow-listed fields and return the box with the names of the fields that were sent."""
    update_data = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if key in UPDATABLE_FIELDS and (value is not None or key in NULLABLE_FIELDS)
    }

    new_number = update_data.get("box_number")
    if new_number and new_number != box.box_number and _box_number_taken(db, new_number, exclude_id=box.id):
        raise DuplicateBoxNumber(new_number)

    if "medications" in update_data:
        update_data["medications"] = _serialize_medications(payload.medications)

    for key, value in update_data.items():
        setattr(box, key, value)
    box.updated_by = updated_by
    box.updated_at = utcnow()

    box = _commit(db, box)
    return box, list(update_data.keys())


def delete_box(db: Session, box: MedicationBox) -> None:
    box_id, box_number = box.id, box.box_number
    db.delete(box)
    db.commit()
    log.info(f"Box '{box_number}' (id={box_id}) deleted")


def assign_box(db: Session, box: MedicationBox, user_ids: List[str]) -> MedicationBox:
    """Replace the assignment list with user_ids (order-preserving, duplicates dropped)."""
    unique_ids = list(dict.fromkeys(user_ids))
    # Reuse rows for users who stay assigned so the unique constraint never sees a re-insert
    existing = {assignment.user_id: assignment for assignment in box.assignments}
    box.assignments = [existing.get(uid) or BoxAssignment(user_id=uid) for uid in unique_ids]
    box.updated_at = utcnow()
    db.commit()
    db.refresh(box)
    return box


def record_inventory_check(db: Session, box: MedicationBox, medications: List[Medication], checked_by: str) -> MedicationBox:
    now = utcnow()
    box.medications = _serialize_medications(medications)
    box.last_inventory_date = now
    box.updated_at = now
    box.updated_by = checked_by
    db.commit()
    db.refresh(box)
    return box
