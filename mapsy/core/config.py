import os
from typing import List, Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    app_name: str = "Mapsy API"
    debug: bool = os.getenv("DEBUG", "False").lower() == "true"
    port: int = int(os.getenv("PORT", 3000))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    mongo_url: str = os.getenv("MONGO_URL", "mongodb://localhost:27017")
    mongo_db: str = os.getenv("MONGO_DB", "mapsy")

    jwt_secret: str = os.getenv("JWT_SECRET", "mapsy-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = int(os.getenv("JWT_EXPIRES_DAYS", 7))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", 12))

    google_vision_api_key: Optional[str] = os.getenv("GOOGLE_VISION_API_KEY")
    google_vision_url: str = os.getenv(
        "GOOGLE_VISION_URL", "https://vision.googleapis.com/v1/images:annotate"
    )

    # Groq exposes an OpenAI-compatible endpoint
    llm_api_key: Optional[str] = os.getenv("LLM_API_KEY") or os.getenv("GROQ_API_KEY")
    llm_base_url: str = os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1")
    llm_model: str = os.getenv("LLM_MODEL", "llama-3.1-8b-instant")

    external_timeout_seconds: float = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", 15))
    max_image_size: int = int(os.getenv("MAX_IMAGE_SIZE", 10 * 1024 * 1024))

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

settings = Settings()
