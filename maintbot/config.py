import os
import logging
from dotenv import load_dotenv

load_dotenv()

class Config:
    # Bot Token (REQUIRED for polling, checked in validate())
    BOT_TOKEN = os.getenv("BOT_TOKEN")

    # Database Configuration
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASS = os.getenv("DB_PASS", "postgres")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "maintenance")

    @property
    def DATABASE_URL(self):
        # Prefer DATABASE_URL env var if set (for SQLite support)
        url = os.getenv("DATABASE_URL")
        if url:
            return url

        # Build PostgreSQL URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Ollama Settings (OPTIONAL - for drafting emails and checklists)
    # If not set, templates are used instead
    OLLAMA_HOST = os.getenv("OLLAMA_HOST", None)  # None = disabled
    OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3")

    # Blob storage for images and documents
    MEDIA_DIR = os.getenv("MEDIA_DIR", "media")
    MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")

    # Dashboard / reminders
    UPCOMING_WINDOW_DAYS = int(os.getenv("UPCOMING_WINDOW_DAYS", "30"))
    REMINDER_DAYS = int(os.getenv("REMINDER_DAYS", "3"))
    REMINDER_HOUR = int(os.getenv("REMINDER_HOUR", "9"))

    def validate(self):
        if not self.BOT_TOKEN:
            raise ValueError(
                "BOT_TOKEN is required! Set it in .env file.\n"
                "Get token from @BotFather on Telegram."
            )

config = Config()

# Log configuration on startup
logging.info(f"Database: {config.DATABASE_URL.split('@')[1] if '@' in config.DATABASE_URL else 'SQLite'}")
logging.info(f"Text generation: {'ollama' if config.OLLAMA_HOST else 'templates only'}")
