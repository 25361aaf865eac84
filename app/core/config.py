from typing import List
from uuid import UUID

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL_LOCAL: str = "sqlite:///./ftg_assessments.db"
    DATABASE_URL_DOCKER: str = ""

    RUNNING_IN_DOCKER: bool = False

    # Reward categories (challenge ids) stamped on challenge_activity rows
    ADMIN_ASSIGNMENT_CHALLENGE_ID: UUID = UUID("57de6344-ff1c-4ad1-9d88-e22fdbdf5f6e")
    QUIZ_BONUS_CHALLENGE_ID: UUID = UUID("d4660236-2fb5-454f-af82-42648e21b6e3")

    QUIZ_PASSING_SCORE_PERCENT: int = 70

    CORS_ORIGINS: List[str] = [
        "http://localhost:8081",
        "http://127.0.0.1:8081",
    ]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def DATABASE_URL(self) -> str:
        """
        Use the docker DB only when explicitly running inside a container.
        """
        if self.RUNNING_IN_DOCKER and self.DATABASE_URL_DOCKER:
            return self.DATABASE_URL_DOCKER
        return self.DATABASE_URL_LOCAL


settings = Settings()
