from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()

class Settings(BaseModel):
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8080/api")
    api_timeout_seconds: float = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
    session_database_url: str = os.getenv("SESSION_DATABASE_URL", "sqlite+aiosqlite:///./meditrack_session.db")
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "meditrack_session")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
