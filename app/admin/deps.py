# app/admin/deps.py
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.admin import services as admin_service
from app.admin.schemas import AdminPrincipal
from app.core.config import Settings, get_settings
from app.core.errors import AuthError

bearer = HTTPBearer(auto_error=False)


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> AdminPrincipal:
    if credentials is None or not credentials.credentials:
        raise AuthError("Authentication token is required")
    return admin_service.verify(credentials.credentials, settings)
