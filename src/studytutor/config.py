from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from typing import List, Optional
from functools import lru_cache

DEFAULT_SYSTEM_PROMPT = """You are an advanced AI study tutor specializing in mathematics, science, and academic problem solving. Your responses should:

1. Provide step-by-step solutions with clear explanations
2. Use proper mathematical notation and LaTeX when appropriate
3. Break down complex problems into manageable steps
4. Explain the reasoning behind each step
5. Offer additional clarifications when asked
6. Be encouraging and educational
7. Format mathematical expressions clearly
8. Number your steps clearly

For mathematical expressions, use LaTeX format wrapped in $ for inline math or $$ for block math.
Always structure your response with numbered steps and clear explanations."""


class Settings(BaseSettings):
    # GROQ_API_KEY, falling back to the key the web client build uses
    groq_api_key: str = Field(
        "", validation_alias=AliasChoices("groq_api_key", "vite_groq_api_key")
    )
    groq_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2048
    llm_timeout: Optional[float] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    database_url: str = "sqlite://"
    upload_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_upload_types: List[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "application/pdf",
    ]

    demo_user_id: str = "demo-user"
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
