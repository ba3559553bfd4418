from enum import Enum, IntEnum


class AppID(IntEnum):
    ADMIN = 1
    PUBLIC = 2


class OrderIn(IntEnum):
    ASC = 1
    DESC = 2


class AccountStatus(IntEnum):
    ACTIVE = 1
    SUSPENDED = 2


class AdminRole(IntEnum):
    SUPER_ADMIN = 1
    ADMIN = 2


class PlatformType(IntEnum):
    OTHER = 1
    WEB = 2
    NATIVE = 3
    SERVER = 4


# The string values below are persisted and read by other tooling
class BookingStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    TAKEN = "taken"


class PassengerClass(str, Enum):
    LEVEL_100 = "100"
    LEVEL_200 = "200"
    LEVEL_300 = "300"
    LEVEL_400 = "400"
    NON_STUDENT = "Non-Student"
