# casechron/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import json
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "CaseChron"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # JWT Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # AWS Configuration
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"

    # Chronology extraction (Bedrock / Claude)
    BEDROCK_MODEL_ID: str = "anthropic.claude-3-5-sonnet-20241022-v2:0"
    ANALYSIS_MAX_TOKENS: int = 4000
    ANALYSIS_TEMPERATURE: float = 0.0
    EXISTING_ENTRY_SUMMARY_CHARS: int = 100

    # Image description
    VISION_ENABLED: bool = True
    VISION_BEDROCK_MODEL_ID: str = ""  # falls back to BEDROCK_MODEL_ID
    VISION_MAX_TOKENS: int = 2000

    @field_validator("BEDROCK_MODEL_ID", "VISION_BEDROCK_MODEL_ID", mode="before")
    @classmethod
    def strip_model_id(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v

    # PDF parsing: "pypdf" (local), "textract" (AWS) or "" (not configured)
    PDF_PARSER: str = "pypdf"

    # S3
    S3_BUCKET_NAME: str = "casechron-documents"
    S3_PUBLIC_BASE_URL: str = ""
    DOWNLOAD_URL_EXPIRES_SECONDS: int = 3600
    MAX_UPLOAD_BYTES: int = 26214400  # 25MB

    # CORS
    CORS_ORIGINS: str = '["http://localhost:3000"]'

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def vision_model_id(self) -> str:
        return self.VISION_BEDROCK_MODEL_ID or self.BEDROCK_MODEL_ID

    @property
    def pdf_parser(self) -> str:
        return (self.PDF_PARSER or "").strip().lower()

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from string to list"""
        try:
            if isinstance(self.CORS_ORIGINS, str):
                return json.loads(self.CORS_ORIGINS)
            return self.CORS_ORIGINS
        except json.JSONDecodeError:
            return ["http://localhost:3000"]


# Create settings instance
settings = Settings()
