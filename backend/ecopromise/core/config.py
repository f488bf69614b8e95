# FILE: backend/ecopromise/core/config.py
# EcoPromise configuration. Values come from the environment or a local .env file.
# 1. NEXTAUTH_SECRET is shared with the frontend, which signs the bridge tokens.
# 2. AI_* settings point at any OpenAI-compatible chat endpoint (Gemini by default).

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Union, Optional
from pydantic import field_validator
import json

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- API Setup ---
    PROJECT_NAME: str = "EcoPromise API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # --- Auth Bridge ---
    NEXTAUTH_SECRET: str = "changeme"
    ALGORITHM: str = "HS256"
    BRIDGE_TOKEN_EXPIRE_HOURS: int = 24

    # --- CORS Configuration ---
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            # Comma-separated string: "http://localhost:3000,https://ecopromise.app"
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        return v

    # --- Database & Broker ---
    DATABASE_URI: str = "mongodb://localhost:27017/ecopromise"
    REDIS_URL: Optional[str] = None

    # --- AI Collaborator ---
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    AI_MODEL: str = "gemini-1.5-flash"
    AI_TIMEOUT_SECONDS: float = 20.0

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

settings = Settings()
