from fastapi import APIRouter, Depends, status
from mapsy.core.dependencies import get_current_user, get_user_service
from mapsy.schemas.user import LoginRequest, OnboardingRequest, RegisterRequest
from mapsy.services.user_service import UserService
from mapsy.utils.response import success_response

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: UserService = Depends(get_user_service)):
    result = await service.register(payload)
    return success_response(data=result, message="User registered successfully")

@router.post("/login")
async def login(payload: LoginRequest, service: UserService = Depends(get_user_service)):
    result = await service.login(payload)
    return success_response(data=result, message="Login successful")

@router.get("/me")
async def me(
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_user(current_user["_id"])
    return success_response(data={"user": user})

@router.patch("/onboarding")
async def update_onboarding(
    payload: OnboardingRequest,
    current_user: dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.set_onboarding(current_user["_id"], payload.onboarding_completed)
    return success_response(data={"user": user}, message="Onboarding status updated")

@router.post("/logout")
async def logout(current_user: dict = Depends(get_current_user)):
    # stateless JWT: the client drops its token
    return success_response(message="Logged out successfully")
