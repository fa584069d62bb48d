"""
Chat-session message pipeline.

Each action turns one user request into persisted ``chat_messages``
documents plus an assistant reply. Text and image actions degrade: a failed
call to the vision or text-generation service becomes a persisted apology
message and the request still succeeds. The recommendations action does
not degrade and lets ``UpstreamError`` reach the HTTP layer.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from mapsy.core.exceptions import NotFoundError, UpstreamError, ValidationError
from mapsy.models.chat import ChatMessage, ChatSession, MessageType, Sender, utcnow
from mapsy.models.vision import LandmarkDetectionResult
from mapsy.repositories.chat_repository import ChatRepository
from mapsy.services.guide_ai_service import GuideAIService
from mapsy.services.recommendation_parser import parse_recommendations
from mapsy.services.vision_service import VisionService
from mapsy.utils.pagination import build_pagination
from mapsy.utils.response import public_document

logger = logging.getLogger("chat_service")

IMAGE_PLACEHOLDER = "Imagen compartida"
TEXT_APOLOGY = "Lo siento, no pude procesar tu pregunta en este momento. Por favor intenta de nuevo."
IMAGE_APOLOGY = "No pude procesar tu imagen en este momento. Por favor intenta de nuevo."
MAX_TITLE_LENGTH = 200


def welcome_text(country: str, city: str) -> str:
    return (
        f"¡Bienvenido a tu guía turístico de {city}, {country}! 🗺️\n\n"
        "Puedes:\n"
        "📸 Subir fotos de lugares para obtener información detallada\n"
        "💬 Hacer preguntas sobre la ciudad y sus atracciones\n"
        "🎯 Pedir recomendaciones de lugares cercanos\n\n"
        "¡Comencemos tu aventura!"
    )


def unidentified_place_text(country: str, city: str) -> str:
    return (
        f"No pude identificar un lugar específico en tu imagen, pero puedo ayudarte con "
        f"información sobre {city}, {country}. ¿Hay algo particular que te gustaría saber?"
    )


def recommendations_lead_in(city: str) -> str:
    return f"Aquí tienes algunas recomendaciones de lugares cercanos para visitar en {city}:"


def session_title_for(landmark_name: str) -> str:
    return f"Chat sobre {landmark_name}"[:MAX_TITLE_LENGTH]


class ChatService:
    def __init__(self, db: AsyncIOMotorDatabase, vision: VisionService, guide_ai: GuideAIService):
        self.repository = ChatRepository(db)
        self.vision = vision
        self.guide_ai = guide_ai

    # sessions

    async def create_session(self, user_id: ObjectId, country: str, city: str) -> Dict[str, Any]:
        country, city = (country or "").strip(), (city or "").strip()
        errors = [
            {"field": field, "message": f"{field.capitalize()} is required"}
            for field, value in (("country", country), ("city", city))
            if not value
        ]
        if errors:
            raise ValidationError("Country and city are required", errors=errors)

        session = await self.repository.create_session(
            ChatSession(user_id=user_id, country=country, city=city)
        )
        welcome = await self._save_message(
            session["_id"], MessageType.SYSTEM, welcome_text(country, city), Sender.ASSISTANT
        )
        logger.info(f"Created chat session {session['_id']} for {city}, {country}")
        return {"session": public_document(session), "welcomeMessage": public_document(welcome)}

    async def get_session(self, user_id: ObjectId, session_id: str) -> dict:
        """Owned session or NotFoundError; a foreign session looks exactly like a missing one."""
        session = await self.repository.get_owned_session(session_id, user_id)
        if not session:
            raise NotFoundError("Chat session not found")
        return session

    async def list_sessions(self, user_id: ObjectId, page: int, limit: int) -> Dict[str, Any]:
        sessions = await self.repository.list_sessions(user_id, skip=(page - 1) * limit, limit=limit)
        total = await self.repository.count_sessions(user_id)

        items = []
        for session in sessions:
            item = public_document(session)
            item.pop("userId", None)
            last_message = await self.repository.get_last_message(session["_id"])
            if last_message:
                item["lastMessage"] = public_document(last_message)
            items.append(item)

        return {"sessions": items, "pagination": build_pagination(page, limit, total)}

    async def get_messages(self, user_id: ObjectId, session_id: str, page: int, limit: int) -> Dict[str, Any]:
        session = await self.get_session(user_id, session_id)
        messages = await self.repository.get_messages(session["_id"], skip=(page - 1) * limit, limit=limit)
        total = await self.repository.count_messages(session["_id"])
        return {
            "session": public_document(session),
            "messages": [public_document(message) for message in messages],
            "pagination": build_pagination(page, limit, total),
        }

    async def update_session(self, user_id: ObjectId, session_id: str,
                             is_active: Optional[bool] = None, title: Optional[str] = None) -> dict:
        session = await self.get_session(user_id, session_id)
        changes: Dict[str, Any] = {}
        if isinstance(is_active, bool):
            changes["isActive"] = is_active
        if title and title.strip():
            changes["title"] = title.strip()[:MAX_TITLE_LENGTH]
        if changes:
            session = await self.repository.update_session(session["_id"], user_id, changes)
            if not session:
                raise NotFoundError("Chat session not found")
        return public_document(session)

    # actions

    async def send_text(self, user_id: ObjectId, session_id: str, content: Optional[str]) -> Dict[str, Any]:
        content = (content or "").strip()
        if not content:
            raise ValidationError.for_field("content", "Message content is required")
        session = await self.get_session(user_id, session_id)

        user_message = await self._save_message(session["_id"], MessageType.TEXT, content, Sender.USER)
        assistant_message = await self._reply_or_apologize(
            session,
            lambda: self.guide_ai.answer_question(session["country"], session["city"], content),
            TEXT_APOLOGY,
        )
        return {
            "userMessage": public_document(user_message),
            "assistantMessage": public_document(assistant_message),
        }

    async def send_image(self, user_id: ObjectId, session_id: str, image: bytes) -> Dict[str, Any]:
        """Upload validation happens at the HTTP edge, before this is called."""
        session = await self.get_session(user_id, session_id)
        user_message = await self._save_message(
            session["_id"], MessageType.IMAGE, IMAGE_PLACEHOLDER, Sender.USER, processing=True
        )
        # the placeholder must be resolved even if the client goes away
        return await asyncio.shield(self._process_image(session, user_message, image))

    async def _process_image(self, session: dict, user_message: dict, image: bytes) -> Dict[str, Any]:
        landmark_info: Optional[LandmarkDetectionResult] = None
        try:
            landmark_info = await self.vision.detect_landmarks(image)
            user_message = await self.repository.update_message(user_message["_id"], {
                "landmarkInfo": landmark_info.to_document(),
                "processing": False,
            })
            reply = await self._describe_image(session, landmark_info)
            assistant_message = await self._save_message(session["_id"], MessageType.TEXT, reply, Sender.ASSISTANT)
        except UpstreamError as e:
            logger.warning(f"Image processing failed for session {session['_id']}: {e.message}")
            if user_message.get("processing"):
                user_message = await self._finish_processing(user_message)
            assistant_message = await self._save_message(
                session["_id"], MessageType.SYSTEM, IMAGE_APOLOGY, Sender.ASSISTANT
            )
            return {
                "userMessage": public_document(user_message),
                "assistantMessage": public_document(assistant_message),
            }
        except Exception:
            if user_message.get("processing"):
                await self._finish_processing(user_message)
            raise

        return {
            "userMessage": public_document(user_message),
            "assistantMessage": public_document(assistant_message),
            "landmarkInfo": landmark_info.to_document(),
        }

    async def _describe_image(self, session: dict, landmark_info: LandmarkDetectionResult) -> str:
        country, city = session["country"], session["city"]

        landmark = landmark_info.primary_landmark
        if landmark:
            reply = await self.guide_ai.describe_landmark(country, city, landmark.description, landmark_info)
            if not session.get("title"):
                await self.repository.update_session(
                    session["_id"], session["userId"], {"title": session_title_for(landmark.description)}
                )
            return reply

        label = landmark_info.best_guess_label
        if label:
            return await self.guide_ai.describe_landmark(country, city, label, landmark_info)

        return unidentified_place_text(country, city)

    async def request_recommendations(self, user_id: ObjectId, session_id: str,
                                      current_landmark: Optional[str] = None) -> Dict[str, Any]:
        session = await self.get_session(user_id, session_id)
        try:
            raw = await self.guide_ai.generate_recommendations_text(
                session["country"], session["city"], current_landmark
            )
        except UpstreamError as e:
            logger.error(f"Error generating recommendations for session {session['_id']}: {e.message}")
            raise UpstreamError("Failed to generate recommendations", service=e.service) from e

        recommendations = parse_recommendations(raw)
        message = await self._save_message(
            session["_id"],
            MessageType.RECOMMENDATION,
            recommendations_lead_in(session["city"]),
            Sender.ASSISTANT,
            recommendations=recommendations,
        )
        return {
            "message": public_document(message),
            "recommendations": [rec.to_document() for rec in recommendations],
        }

    # persistence helpers

    async def _save_message(self, session_id: ObjectId, message_type: MessageType, content: str,
                            sender: Sender, **extra) -> dict:
        return await self.repository.create_message(ChatMessage(
            chat_session_id=session_id,
            type=message_type,
            content=content,
            sender=sender,
            timestamp=utcnow(),
            **extra,
        ))

    async def _finish_processing(self, message: dict) -> dict:
        updated = await self.repository.update_message(message["_id"], {"processing": False})
        return updated or {**message, "processing": False}

    async def _reply_or_apologize(self, session: dict, generate: Callable[[], Awaitable[str]],
                                  apology: str) -> dict:
        """Persist the generated reply, or a system apology if generation fails."""
        try:
            reply = await generate()
        except UpstreamError as e:
            logger.warning(f"Degrading reply for session {session['_id']}: {e.message}")
            return await self._save_message(session["_id"], MessageType.SYSTEM, apology, Sender.ASSISTANT)
        return await self._save_message(session["_id"], MessageType.TEXT, reply, Sender.ASSISTANT)
