from courierkit.shared.domain.auth.service import AuthService

__all__ = ["AuthService"]
