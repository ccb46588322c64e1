from __future__ import annotations

from enum import Enum


class ContractStatus(str, Enum):
    """Contract lifecycle as supplied by the contract service."""

    DRAFT = "draft"
    SENT = "sent"
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class RateBasis(str, Enum):
    """How the contract's rate snapshot turns into revenue."""

    PER_LESSON = "per_lesson"
    PER_MONTH = "per_month"


class AttendanceStatus(str, Enum):
    """Persisted attendance status (column `attendance_logs.status`)."""

    ATTENDED = "attended"
    ABSENT = "absent"
    SUBSTITUTE = "substitute"
    PENDING = "pending"


class CorrectionAction(str, Enum):
    VOID_ATTENDANCE = "void_attendance"
    RESET_RESERVATION_DATE = "reset_reservation_date"
    PURGE_CONTRACT_ATTENDANCE = "purge_contract_attendance"
