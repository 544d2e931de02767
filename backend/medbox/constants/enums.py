from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserStatus(Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


class AuditAction(str, Enum):
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    BOX_CREATE = "BOX_CREATE"
    BOX_UPDATE = "BOX_UPDATE"
    BOX_DELETE = "BOX_DELETE"
    BOX_ASSIGN = "BOX_ASSIGN"
    USER_CREATE = "USER_CREATE"
    USER_DELETE = "USER_DELETE"
    USER_ROLE_CHANGE = "USER_ROLE_CHANGE"
    USER_PIN_RESET = "USER_PIN_RESET"
    INVENTORY_CHECK = "INVENTORY_CHECK"


class TargetType(str, Enum):
    USER = "user"
    MEDICATION_BOX = "medication-box"
