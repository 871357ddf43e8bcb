from courierkit.shared.domain.profile.service import ProfileService, validate_coordinates

__all__ = ["ProfileService", "validate_coordinates"]
