from reservation_engine.workers.hold_maintenance import HoldMaintenanceWorker

__all__ = ["HoldMaintenanceWorker"]
