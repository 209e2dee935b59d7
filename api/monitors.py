from fastapi import APIRouter, Depends, HTTPException, status
from api.dependencies import get_monitor_service, get_current_user
from api.models import (
    MonitorCreate,
    MonitorUpdate,
    MonitorResponse,
    PingEventResponse,
    PingHistoryResponse,
)
from api.services.errors import ValidationError, NotFoundError, PlanLimitError
from api.services.monitor_service import MonitorService
from db.models import Monitor
from db.models.user import User

router = APIRouter()


def to_response(monitor: Monitor, monitor_service: MonitorService) -> MonitorResponse:
    return MonitorResponse(
        id=monitor.id,
        name=monitor.name,
        token=monitor.token,
        ping_url=monitor_service.ping_url(monitor),
        expected_interval=monitor.expected_interval,
        grace_period=monitor.grace_period,
        status=monitor.status,
        last_ping=monitor.last_ping,
        alert_email=monitor.alert_email,
        webhook_url=monitor.webhook_url,
        created_at=monitor.created_at,
    )


def raise_http(e: Exception):
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, PlanLimitError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    raise e


@router.get("/monitors", response_model=list[MonitorResponse])
def list_monitors(
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    return [
        to_response(m, monitor_service)
        for m in monitor_service.list_monitors(current_user.id)
    ]


@router.post("/monitors", response_model=MonitorResponse, status_code=status.HTTP_201_CREATED)
def create_monitor(
    monitor: MonitorCreate,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        created = monitor_service.create_monitor(
            current_user.id,
            monitor.name,
            monitor.expected_interval,
            monitor.grace_period,
            monitor.alert_email,
            # Pydantic HttpUrl is stored as a plain string
            str(monitor.webhook_url) if monitor.webhook_url else None,
        )
    except (ValidationError, PlanLimitError, NotFoundError) as e:
        raise_http(e)
    return to_response(created, monitor_service)


@router.get("/monitors/{monitor_id}", response_model=MonitorResponse)
def get_monitor(
    monitor_id: int,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        monitor = monitor_service.get_monitor(monitor_id, current_user.id)
    except NotFoundError as e:
        raise_http(e)
    return to_response(monitor, monitor_service)


@router.put("/monitors/{monitor_id}", response_model=MonitorResponse)
def update_monitor(
    monitor_id: int,
    monitor: MonitorUpdate,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        # Only fields present in the body change; an explicit null clears an alert target
        changes = monitor.model_dump(exclude_unset=True)
        if changes.get("webhook_url") is not None:
            changes["webhook_url"] = str(changes["webhook_url"])
        updated = monitor_service.update_monitor(monitor_id, current_user.id, **changes)
    except (ValidationError, NotFoundError) as e:
        raise_http(e)
    return to_response(updated, monitor_service)


@router.delete("/monitors/{monitor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_monitor(
    monitor_id: int,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        monitor_service.delete_monitor(monitor_id, current_user.id)
    except NotFoundError as e:
        raise_http(e)


@router.get("/monitors/{monitor_id}/pings", response_model=PingHistoryResponse)
def list_pings(
    monitor_id: int,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        pings = monitor_service.list_pings(monitor_id, current_user.id)
        total = monitor_service.count_pings(monitor_id, current_user.id)
    except NotFoundError as e:
        raise_http(e)
    return PingHistoryResponse(
        total=total,
        pings=[PingEventResponse(id=p.id, received_at=p.received_at) for p in pings],
    )
