from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceLedger
from .common.datetime_utils import now_local
from .contracts.mysql_contract_repository import MySQLContractRepository
from .contracts.repository import ContractRepository
from .core.constants import DEFAULT_HORIZON_DAYS, DEFAULT_ROLLUP_TTL_SECONDS
from .corrections.service import CorrectionTools
from .database.connection import DBConfig, DatabaseConnection
from .notifications.events import EventPublisher, LoggingEventPublisher
from .reservations.generator import OccurrenceGenerator
from .reservations.mysql_reservation_repository import MySQLReservationRepository
from .reservations.repository import ReservationRepository
from .reservations.service import ReservationService
from .statistics.aggregator import ReconciliationAggregator
from .statistics.cache import RollupCache
from .substitution.service import SubstitutionResolver


@dataclass(frozen=True)
class Container:
    contracts_repo: ContractRepository
    reservations_repo: ReservationRepository
    attendance_repo: AttendanceRepository

    generator: OccurrenceGenerator
    reservation_service: ReservationService
    ledger: AttendanceLedger
    substitution: SubstitutionResolver
    aggregator: ReconciliationAggregator
    corrections: CorrectionTools
    rollup_cache: RollupCache


def assemble(
    *,
    contracts_repo: ContractRepository,
    reservations_repo: ReservationRepository,
    attendance_repo: AttendanceRepository,
    publisher: Optional[EventPublisher] = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    allow_backfill: bool = False,
    rollup_ttl_seconds: float = DEFAULT_ROLLUP_TTL_SECONDS,
    clock: Optional[Callable[[], datetime]] = None,
) -> Container:
    """Wire services over any repository implementation (MySQL or in-memory)."""

    generator = OccurrenceGenerator(reservations_repo)
    reservation_service = ReservationService(
        contracts_repo,
        reservations_repo,
        generator=generator,
        horizon_days=horizon_days,
    )
    ledger = AttendanceLedger(
        attendance_repo,
        reservations_repo,
        contracts_repo,
        allow_backfill=allow_backfill,
        clock=clock or now_local,
    )
    substitution = SubstitutionResolver(reservations_repo, ledger, publisher=publisher or LoggingEventPublisher())
    aggregator = ReconciliationAggregator(attendance_repo, contracts_repo)
    corrections = CorrectionTools(ledger, attendance_repo, reservations_repo, contracts_repo)

    return Container(
        contracts_repo=contracts_repo,
        reservations_repo=reservations_repo,
        attendance_repo=attendance_repo,
        generator=generator,
        reservation_service=reservation_service,
        ledger=ledger,
        substitution=substitution,
        aggregator=aggregator,
        corrections=corrections,
        rollup_cache=RollupCache(aggregator, ttl_seconds=rollup_ttl_seconds),
    )


def build_container(
    *,
    db_config: dict,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    allow_backfill: bool = False,
    rollup_ttl_seconds: float = DEFAULT_ROLLUP_TTL_SECONDS,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        lock_wait_timeout=int(db_config.get("lock_wait_timeout", 10)),
    )
    conn = DatabaseConnection.get_instance(config)

    return assemble(
        contracts_repo=MySQLContractRepository(conn),
        reservations_repo=MySQLReservationRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        horizon_days=horizon_days,
        allow_backfill=allow_backfill,
        rollup_ttl_seconds=rollup_ttl_seconds,
    )
