"""Profile service: courier profile, availability, location and stats."""

from __future__ import annotations

import logging
import math

from courierkit.shared.domain.base import BaseService, parse_model
from courierkit.shared.domain.models import (
    Availability,
    DeliveryBoy,
    DeliveryBoyProfile,
    DeliveryStats,
    LocationRequest,
)
from courierkit.shared.infrastructure.http.results import ApiResult, failure

logger = logging.getLogger(__name__)

INVALID_LATITUDE = "Invalid latitude. Must be between -90 and 90"
INVALID_LONGITUDE = "Invalid longitude. Must be between -180 and 180"


def validate_coordinates(latitude: float, longitude: float) -> str | None:
    """Return an error message for out-of-range coordinates, else None."""
    if not isinstance(latitude, (int, float)) or math.isnan(latitude) or not -90 <= latitude <= 90:
        return INVALID_LATITUDE
    if not isinstance(longitude, (int, float)) or math.isnan(longitude) or not -180 <= longitude <= 180:
        return INVALID_LONGITUDE
    return None


class ProfileService(BaseService):

    async def get_profile(self) -> ApiResult:
        result = await self.gateway.get("/me")
        return parse_model(result, DeliveryBoyProfile, "profile")

    async def update_availability(self, availability: Availability | str) -> ApiResult:
        """Set availability; returns the server's updated courier record.

        Raises:
            ValueError: If ``availability`` is not available/busy/offline
        """
        value = Availability(availability)
        result = await self.gateway.put("/availability", {"availability": value.value})
        return parse_model(result, DeliveryBoy, "courier")

    async def update_location(self, latitude: float, longitude: float) -> ApiResult:
        # Out-of-range coordinates never reach the network
        error = validate_coordinates(latitude, longitude)
        if error:
            logger.warning(f"Rejected location update ({latitude}, {longitude}): {error}")
            return failure(error, error="validation")

        location = LocationRequest(latitude=latitude, longitude=longitude)
        result = await self.gateway.put("/location", location.to_wire())
        return parse_model(result, DeliveryBoy, "courier")

    async def get_stats(self) -> ApiResult:
        result = await self.gateway.get("/stats")
        return parse_model(result, DeliveryStats, "stats")
