from enum import Enum


class ItemCategory(str, Enum):
    PHONE = "PHONE"
    ID = "ID"
    WALLET = "WALLET"
    BAG = "BAG"
    KEYS = "KEYS"
    OTHER = "OTHER"


class ItemStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MATCHED = "MATCHED"
    CLOSED = "CLOSED"


class ClaimStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    RETURNED = "RETURNED"


class UserRole(str, Enum):
    CITIZEN = "citizen"
    COOP_STAFF = "coop_staff"
    ADMIN = "admin"


class ScamReportStatus(str, Enum):
    OPEN = "OPEN"
    CONFIRMED = "CONFIRMED"
    DISMISSED = "DISMISSED"
