from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", populate_by_name=True
    )

    app_name: str = "VistaGuide"
    environment: str = Field("local", alias="ENVIRONMENT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    db_path: str = Field("vistaguide_offline.db", alias="DB_PATH")

    connectivity_probe_url: str = Field(
        "https://www.google.com/generate_204", alias="CONNECTIVITY_PROBE_URL"
    )
    connectivity_timeout_seconds: float = Field(2.0, alias="CONNECTIVITY_TIMEOUT_SECONDS")
    connectivity_cache_seconds: float = Field(30.0, alias="CONNECTIVITY_CACHE_SECONDS")

    # TTLs per freshness kind, in minutes
    enrichment_ttl_minutes: float = Field(2.0, alias="ENRICHMENT_TTL_MINUTES")
    weather_ttl_minutes: float = Field(15.0, alias="WEATHER_TTL_MINUTES")
    recommendations_ttl_minutes: float = Field(15.0, alias="RECOMMENDATIONS_TTL_MINUTES")
    image_ttl_minutes: float = Field(24 * 60.0, alias="IMAGE_TTL_MINUTES")

    remote_timeout_seconds: float = Field(10.0, alias="REMOTE_TIMEOUT_SECONDS")
    provider_timeout_seconds: float = Field(5.0, alias="PROVIDER_TIMEOUT_SECONDS")

    gemini_api_key: str | None = Field(None, alias="GEMINI_API_KEY")
    gemini_model: str = Field("gemini-2.0-flash", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_BASE_URL"
    )

    firestore_project_id: str | None = Field(None, alias="FIRESTORE_PROJECT_ID")
    firestore_api_key: str | None = Field(None, alias="FIRESTORE_API_KEY")
    firestore_collection: str = Field("destinations", alias="FIRESTORE_COLLECTION")

    unsplash_access_key: str | None = Field(None, alias="UNSPLASH_ACCESS_KEY")
    pexels_api_key: str | None = Field(None, alias="PEXELS_API_KEY")
    image_query_suffix: str = Field("India", alias="IMAGE_QUERY_SUFFIX")

    ollama_host: str = Field("http://localhost:11434", alias="OLLAMA_HOST")
    local_model: str = Field("gemma3:270m", alias="LOCAL_MODEL")
    local_model_path: str | None = Field(None, alias="LOCAL_MODEL_PATH")
    local_max_tokens: int = Field(80, alias="LOCAL_MAX_TOKENS")
    local_timeout_seconds: float = Field(30.0, alias="LOCAL_TIMEOUT_SECONDS")


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env")
    return Settings()


settings = get_settings()
