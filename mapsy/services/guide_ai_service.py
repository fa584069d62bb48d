import openai
from typing import Optional
from mapsy.core.config import settings
from mapsy.core.exceptions import UpstreamError
from mapsy.models.vision import LandmarkDetectionResult
import logging

logger = logging.getLogger("guide_ai_service")

NO_ANSWER_TEXT = "Lo siento, no pude responder tu pregunta en este momento."
NO_DESCRIPTION_TEXT = "Lo siento, no pude generar una respuesta en este momento."

class GuideAIService:
    """Tourist-guide prompts over an OpenAI-compatible chat completions API."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model
        self.client = None
        if self.api_key:
            self.client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=base_url or settings.llm_base_url,
                timeout=timeout or settings.external_timeout_seconds,
                max_retries=0,
            )

    async def _complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        if self.client is None:
            raise UpstreamError("Text generation API key is not configured", service="llm")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError:
            raise UpstreamError("Text generation timed out", service="llm")
        except openai.OpenAIError as e:
            logger.error(f"Text generation API error: {e}")
            raise UpstreamError("Failed to generate AI response", service="llm")

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def answer_question(self, country: str, city: str, question: str) -> str:
        prompt = self.build_question_prompt(country, city, question)
        return await self._complete(prompt, temperature=0.5, max_tokens=500) or NO_ANSWER_TEXT

    async def describe_landmark(self, country: str, city: str, landmark_name: str,
                                landmark_info: Optional[LandmarkDetectionResult] = None) -> str:
        prompt = self.build_tourist_prompt(country, city, landmark_name, landmark_info)
        return await self._complete(prompt, temperature=0.7, max_tokens=800) or NO_DESCRIPTION_TEXT

    async def generate_recommendations_text(self, country: str, city: str,
                                            current_landmark: Optional[str] = None) -> str:
        """Raw reply; parsing is left to ``parse_recommendations``."""
        prompt = self.build_recommendation_prompt(country, city, current_landmark)
        return await self._complete(prompt, temperature=0.6, max_tokens=600)

    def _guide_intro(self, role: str, country: str, city: str) -> str:
        intro = f"Eres un {role} {country}"
        if city:
            intro += f", específicamente en {city}"
        return intro

    def build_tourist_prompt(self, country: str, city: str, landmark_name: str,
                             landmark_info: Optional[LandmarkDetectionResult] = None) -> str:
        prompt_parts = [
            self._guide_intro("guía turístico experto especializado en", country, city)
            + ". Tu trabajo es proporcionar información cultural, histórica y práctica "
              "de manera amigable, detallada y entretenida.\n",
            f"El turista está visitando: {landmark_name}",
        ]
        if landmark_info:
            landmark = landmark_info.primary_landmark
            if landmark:
                if landmark.locations:
                    lat_lng = landmark.locations[0].lat_lng
                    prompt_parts.append(f"Ubicación: {lat_lng.latitude}, {lat_lng.longitude}")
                else:
                    prompt_parts.append("Ubicación: No disponible")
                prompt_parts.append(f"Confianza de detección: {round(landmark.score * 100)}%")
            labels = landmark_info.best_guess_labels
            if labels:
                prompt_parts.append(f"Información adicional detectada: {', '.join(labels)}")
        prompt_parts.append("")
        prompt_parts.append("Proporciona información interesante incluyendo:")
        prompt_parts.append("- Historia y contexto cultural")
        prompt_parts.append("- Datos curiosos y anécdotas")
        prompt_parts.append("- Información práctica para la visita")
        prompt_parts.append("- Tips de fotografía si es relevante")
        prompt_parts.append("- Recomendaciones sobre el mejor momento para visitar")
        prompt_parts.append("")
        prompt_parts.append(
            "Responde de manera conversacional, como si fueras un guía local experto y amigable. "
            "Usa emojis ocasionalmente para hacer la respuesta más atractiva."
        )
        return "\n".join(prompt_parts)

    def build_recommendation_prompt(self, country: str, city: str,
                                    current_landmark: Optional[str] = None) -> str:
        prompt_parts = [self._guide_intro("guía turístico local experto en", country, city) + ".", ""]
        if current_landmark:
            prompt_parts.append(f"El turista acaba de visitar: {current_landmark}")
            prompt_parts.append("")
        prompt_parts.append(
            "Recomienda exactamente 3 lugares cercanos e interesantes para visitar a continuación. "
            "Pueden ser museos, monumentos, atracciones, restaurantes típicos, o sitios culturales."
        )
        prompt_parts.append("")
        prompt_parts.append("Para cada recomendación, proporciona la información en el siguiente formato JSON:")
        prompt_parts.append("""```json
[
  {
    "name": "Nombre del lugar",
    "type": "museum|monument|restaurant|attraction|park|viewpoint",
    "distance": 500,
    "description": "Descripción atractiva y detallada del lugar",
    "rating": 4.5
  }
]
```""")
        prompt_parts.append("")
        prompt_parts.append(
            "Asegúrate de que las recomendaciones sean relevantes y estén realmente en la zona. "
            "La distancia debe ser en metros y realista. Solo responde con el JSON, sin texto adicional."
        )
        return "\n".join(prompt_parts)

    def build_question_prompt(self, country: str, city: str, question: str) -> str:
        return (
            self._guide_intro("guía turístico experto en", country, city)
            + ". Responde la siguiente pregunta del turista de manera informativa y útil:\n\n"
            + f'Pregunta: "{question}"\n\n'
            + "Proporciona una respuesta precisa, práctica y conversacional. "
            + "Si es relevante, incluye tips locales, horarios, precios aproximados, o recomendaciones adicionales."
        )

guide_ai_service = GuideAIService()

def get_guide_ai_service() -> GuideAIService:
    return guide_ai_service
