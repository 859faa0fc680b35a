"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.repository.demand_repository import DemandRepository
from backend.services.auth_service import AuthService, InvalidAdminTokenError
from backend.services.metrics_service import MetricsRecorder
from backend.services.scheduling_service import SchedulingService
from backend.utils.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def _service_unavailable(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{name} is not initialized",
    )


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_scheduling_service(request: Request) -> SchedulingService:
    service = getattr(request.app.state, "scheduling_service", None)
    if service is None:
        raise _service_unavailable("Scheduling service")
    return service


def get_demand_repository(request: Request) -> DemandRepository:
    repository = getattr(request.app.state, "demand_repository", None)
    if repository is None:
        raise _service_unavailable("Demand repository")
    return repository


def get_metrics_recorder(request: Request) -> MetricsRecorder:
    recorder = getattr(request.app.state, "metrics_recorder", None)
    if recorder is None:
        raise _service_unavailable("Metrics recorder")
    return recorder


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    if not auth_service.auth_enabled:
        return
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        auth_service.validate_bearer_token(credentials.credentials)
    except InvalidAdminTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
