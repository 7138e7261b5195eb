"""
Service wiring.

Builds every reservation service around one InventoryStore, one
availability cache and one clock. The API keeps a single engine on
app.state; tests build their own over the in-memory store.
"""

from dataclasses import dataclass
from typing import Optional

from reservation_engine.core.config import Settings
from reservation_engine.domain.holds import Clock, utc_now
from reservation_engine.notifications import BookingNotifier, LoggingEmailNotifier, NotificationDispatcher
from reservation_engine.payments.reconciler import PaymentEventReconciler
from reservation_engine.services.admin_guard import AdminBookingService, AdminConflictGuard
from reservation_engine.services.availability import AvailabilityCalculator
from reservation_engine.services.availability_cache import AvailabilityCache, build_availability_cache
from reservation_engine.services.bookings import BookingLifecycle
from reservation_engine.services.reservations import ReservationService
from reservation_engine.services.seat_holds import SeatHoldManager
from reservation_engine.services.validator import BookingValidator
from reservation_engine.storage.interface import InventoryStore
from reservation_engine.storage.memory import InMemoryInventoryStore
from reservation_engine.workers.hold_maintenance import HoldMaintenanceWorker


@dataclass
class ReservationEngine:
    settings: Settings
    store: InventoryStore
    cache: AvailabilityCache
    availability: AvailabilityCalculator
    holds: SeatHoldManager
    validator: BookingValidator
    reservations: ReservationService
    notifications: NotificationDispatcher
    lifecycle: BookingLifecycle
    admin: AdminBookingService
    reconciler: PaymentEventReconciler
    worker: HoldMaintenanceWorker


def build_store(settings: Settings) -> InventoryStore:
    """
    Store selection:
    - sqlalchemy: PostgreSQL through the async engine (default)
    - memory: single-process store for local runs and tests
    """
    if settings.STORE_BACKEND == "memory":
        return InMemoryInventoryStore()

    from reservation_engine.db.session import get_engine, make_session_factory
    from reservation_engine.storage.sqlalchemy_store import SqlAlchemyInventoryStore

    return SqlAlchemyInventoryStore(make_session_factory(get_engine()))


def build_engine(
    settings: Settings,
    store: Optional[InventoryStore] = None,
    cache: Optional[AvailabilityCache] = None,
    notifier: Optional[BookingNotifier] = None,
    clock: Clock = utc_now,
) -> ReservationEngine:
    store = store if store is not None else build_store(settings)
    cache = cache if cache is not None else build_availability_cache(settings, clock)

    availability = AvailabilityCalculator(store, cache)
    holds = SeatHoldManager(store, ttl_minutes=settings.HOLD_TTL_MINUTES, clock=clock)
    validator = BookingValidator(store, clock)
    reservations = ReservationService(
        store, holds, validator, cutoff_days=settings.TICKET_CUTOFF_DAYS, clock=clock
    )
    notifications = NotificationDispatcher(notifier or LoggingEmailNotifier())
    lifecycle = BookingLifecycle(store, availability, notifications, clock)
    admin = AdminBookingService(AdminConflictGuard(validator), lifecycle)
    reconciler = PaymentEventReconciler(store, lifecycle, holds, clock)
    worker = HoldMaintenanceWorker(
        holds,
        availability,
        sweep_interval=settings.HOLD_SWEEP_INTERVAL_SECONDS,
        refresh_interval=settings.AVAILABILITY_REFRESH_INTERVAL_SECONDS,
    )

    return ReservationEngine(
        settings=settings,
        store=store,
        cache=cache,
        availability=availability,
        holds=holds,
        validator=validator,
        reservations=reservations,
        notifications=notifications,
        lifecycle=lifecycle,
        admin=admin,
        reconciler=reconciler,
        worker=worker,
    )
