from typing import Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from mapsy.core.dependencies import get_chat_service, get_current_user
from mapsy.schemas.chat import (
    CreateSessionRequest,
    RecommendationRequest,
    SendMessageRequest,
    UpdateSessionRequest,
)
from mapsy.services.chat_service import ChatService
from mapsy.utils.pagination import parse_page_params
from mapsy.utils.response import success_response
from mapsy.utils.uploads import read_image_upload

router = APIRouter(prefix="/api/chat", tags=["chat"])

SESSIONS_PAGE_SIZE = 20
MESSAGES_PAGE_SIZE = 50

@router.post("/sessions")
async def create_session(
    payload: CreateSessionRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    result = await service.create_session(current_user["_id"], payload.country, payload.city)
    return success_response(data=result, message="Chat session created")

@router.get("/sessions")
async def list_sessions(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    page_number, page_size = parse_page_params(page, limit, SESSIONS_PAGE_SIZE)
    result = await service.list_sessions(current_user["_id"], page_number, page_size)
    return success_response(data=result)

@router.get("/sessions/{session_id}/messages")
async def get_messages(
    session_id: str,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    page_number, page_size = parse_page_params(page, limit, MESSAGES_PAGE_SIZE)
    result = await service.get_messages(current_user["_id"], session_id, page_number, page_size)
    return success_response(data=result)

@router.post("/sessions/{session_id}/messages")
async def send_message(
    session_id: str,
    payload: SendMessageRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    result = await service.send_text(current_user["_id"], session_id, payload.content)
    return success_response(data=result, message="Message sent")

@router.post("/sessions/{session_id}/images")
async def upload_image(
    session_id: str,
    image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    data = await read_image_upload(image)
    result = await service.send_image(current_user["_id"], session_id, data)
    return success_response(data=result, message="Image processed")

@router.post("/sessions/{session_id}/recommendations")
async def get_recommendations(
    session_id: str,
    payload: Optional[RecommendationRequest] = None,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    current_landmark = payload.current_landmark if payload else None
    result = await service.request_recommendations(current_user["_id"], session_id, current_landmark)
    return success_response(data=result, message="Recommendations generated")

@router.patch("/sessions/{session_id}")
async def update_session(
    session_id: str,
    payload: UpdateSessionRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    session = await service.update_session(
        current_user["_id"], session_id, is_active=payload.is_active, title=payload.title
    )
    return success_response(data=session, message="Chat session updated")
