"""
Auth Router - account registration and login
"""
from fastapi import APIRouter, Depends, status

from ..dependencies import Services, get_services
from ..schemas import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    """Create an account; 409 when the email is taken"""
    user_id = await services.accounts.register(body.name, body.email, body.password)
    return RegisterResponse(message="User registered, please log in", user_id=user_id)


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    """Exchange credentials for an access token"""
    result = await services.accounts.login(body.email, body.password)
    return LoginResponse(message="Login successful", user_id=result["user_id"], token=result["token"])
