# marketplace/api/dependencies.py
from fastapi import Depends, Header, HTTPException

from marketplace.domain.constants import Role
from marketplace.domain.schemas import CurrentUser
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.services.product_client import ProductClient


def get_current_user(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> CurrentUser:
    """Tozsamosc ustawiona przez gateway (X-User-Id, X-User-Role)."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Brak tozsamosci uzytkownika")
    try:
        return CurrentUser(id=int(x_user_id), role=Role(x_user_role.strip().lower()))
    except ValueError:
        raise HTTPException(status_code=401, detail="Niepoprawna tozsamosc uzytkownika")


def require_roles(*roles: Role):
    def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Brak uprawnien")
        return user

    return checker


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_lock_service() -> LockService:
    return LockService()


def get_product_client() -> ProductClient:
    return ProductClient()
