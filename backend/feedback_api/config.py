import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Credential variable and default model for each summarization provider
PROVIDER_KEYS = {
    "gemini": "GEMINI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "groq": "GROQ_API_KEY",
}
DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash",
    "claude": "claude-3-5-sonnet-latest",
    "groq": "llama-3.3-70b-versatile",
}


@dataclass
class Settings:
    # Defaults can be overridden via environment variables
    database_path: str = field(default_factory=lambda: os.getenv("DATABASE_PATH", "meeting_feedback.db"))
    ai_provider: str = field(default_factory=lambda: os.getenv("AI_PROVIDER", "gemini").lower())
    ai_model_name: str = field(default_factory=lambda: os.getenv("AI_MODEL_NAME", ""))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "4000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "DEBUG").upper())

    @property
    def model_name(self) -> str:
        return self.ai_model_name or DEFAULT_MODELS.get(self.ai_provider, "")

    @property
    def api_key(self) -> Optional[str]:
        """Credential for the configured provider, or None when it is not set."""
        env_name = PROVIDER_KEYS.get(self.ai_provider)
        if not env_name:
            return None
        return (os.getenv(env_name) or "").strip() or None
