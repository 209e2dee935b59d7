# api/dependencies.py
from fastapi import Depends, Request, HTTPException, status
from db.engine import SessionLocal
from sqlalchemy.orm import Session
from db.models.user import User
from db.repositories.monitor_repository import MonitorRepository
from db.repositories.user_repository import UserRepository
from db.repositories.settings_repository import SettingsRepository
from api.services.monitor_service import MonitorService
from api.services.ping_service import PingService
from api.services.user_service import UserService, UserServiceException


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_monitor_service(db: Session = Depends(get_db)) -> MonitorService:
    return MonitorService(
        MonitorRepository(db), UserRepository(db), SettingsRepository(db)
    )


def get_ping_service(db: Session = Depends(get_db)) -> PingService:
    return PingService(MonitorRepository(db))


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(UserRepository(db))


async def get_current_user(
    request: Request,
    user_service: UserService = Depends(get_user_service),
) -> User:
    try:
        return await user_service.get_current_user_from_request(request)
    except UserServiceException as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
