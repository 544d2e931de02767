from typing import Optional, Dict, Any
from datetime import datetime

from medbox.schemas.base import CamelModel


class AuditLogInDB(CamelModel):
    id: int
    user_id: Optional[str] = None
    username: Optional[str] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool
    timestamp: datetime
