from courierkit.shared.domain.tracking.service import (
    LocationTracker,
    OrderRefresher,
    PeriodicTask,
    no_location,
)

__all__ = ["LocationTracker", "OrderRefresher", "PeriodicTask", "no_location"]
