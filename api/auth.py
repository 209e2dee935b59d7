from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.security import OAuth2PasswordRequestForm
from api.models import UserResponse
from api.dependencies import get_user_service, get_current_user
from api.rate_limit import limiter
from api.services.user_service import UserService, UserServiceException
from db.models.user import User

router = APIRouter()


@router.post("/signup", response_model=UserResponse)
@limiter.limit("5/hour")
def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    user_service: UserService = Depends(get_user_service),
):
    try:
        user = user_service.signup(email, password)
    except UserServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserResponse(id=user.id, email=user.email, plan=user.plan)


@router.post("/login")
@limiter.limit("10/minute")  # Prevent brute force
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_service: UserService = Depends(get_user_service),
):
    try:
        token = user_service.login(form_data.username, form_data.password)
    except UserServiceException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse(id=current_user.id, email=current_user.email, plan=current_user.plan)
