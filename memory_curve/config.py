from pydantic_settings import BaseSettings
from pathlib import Path

# Get the project root directory (parent of memory_curve folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'memory_curve.db'}"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # JSON lines instead of console output

    # Progress reporting
    target_mastery_rate: float = 0.8
    due_list_limit: int = 20  # rows shown by `cli.py due`

    class Config:
        env_file = str(PROJECT_ROOT / ".env")

settings = Settings()
