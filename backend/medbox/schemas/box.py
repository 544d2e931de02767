from datetime import date, datetime
from typing import Annotated, List, Optional, Union

from pydantic import Field, StringConstraints

from medbox.schemas.base import CamelModel

BoxNumber = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


class Medication(CamelModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    quantity: float = Field(0, ge=0)
    unit: str = "units"
    expiration_date: Optional[Union[date, str]] = None
    lot_number: str = ""
    controlled_substance: bool = False
    schedule: str = ""


class BoxCreate(CamelModel):
    box_number: BoxNumber
    description: str = ""
    location: str = ""
    medications: List[Medication] = []


class BoxUpdate(CamelModel):
    """Allow-listed mutable fields; anything else in the body is ignored."""
    box_number: Optional[BoxNumber] = None
    description: Optional[str] = None
    location: Optional[str] = None
    medications: Optional[List[Medication]] = None
    status: Optional[Annotated[str, StringConstraints(min_length=1, max_length=20)]] = None
    last_inventory_date: Optional[datetime] = None


class BoxAssign(CamelModel):
    user_ids: List[str]


class InventoryCheck(CamelModel):
    medications: List[Medication]


class BoxOut(CamelModel):
    id: int
    box_number: str
    description: str
    location: str
    medications: List[Medication]
    assigned_to: List[str]
    status: str
    last_inventory_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    created_by: str
    updated_at: Optional[datetime] = None
    updated_by: str


class AssignResult(CamelModel):
    id: int
    assigned_to: List[str]
