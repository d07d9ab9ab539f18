import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Storage
    DB_PATH: str = os.getenv(
        "DB_PATH",
        os.path.join(os.path.dirname(__file__), "..", "data", "journal.db"),
    )

    # AI coach
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "gemini")

    # HTTP
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
    API_KEY: str = os.getenv("API_KEY", "")

    # Server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Backtest
    DEFAULT_INITIAL_CAPITAL: float = float(os.getenv("DEFAULT_INITIAL_CAPITAL", "100000"))

    def validate(self):
        errors = []
        keys = {
            "groq": self.GROQ_API_KEY,
            "gemini": self.GOOGLE_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "openai": self.OPENAI_API_KEY,
        }
        if self.AI_PROVIDER not in keys:
            errors.append(f"Unknown AI_PROVIDER: {self.AI_PROVIDER}")
        elif not keys[self.AI_PROVIDER]:
            errors.append(f"API key for AI_PROVIDER '{self.AI_PROVIDER}' is not set")
        if self.DEFAULT_INITIAL_CAPITAL <= 0:
            errors.append("DEFAULT_INITIAL_CAPITAL must be positive")
        return errors


settings = Settings()
