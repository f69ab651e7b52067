from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Quiz Session Tracker"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # ArangoDB
    ARANGO_HOST: str = "http://localhost:8529"
    ARANGO_USERNAME: str = "root"
    ARANGO_PASSWORD: str = "test"
    ARANGO_DB_NAME: str = "quiz_tracker"

    # Reconciliation
    SESSION_LOOKBACK_MINUTES: int = 60

    # Session queries
    DEFAULT_PAGE_SIZE: int = 100
    MAX_PAGE_SIZE: int = 500
    QUIZ_POOL_SAMPLE_SIZE: int = 50

    # Analytics
    DEFAULT_CATEGORY: str = "Mixed Questions"


    class Config:
        env_file = ".env"

settings = Settings()
