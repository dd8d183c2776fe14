"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Remote code fix service
    service_mode: str = "remote"  # "remote" or "local"
    service_base_url: str = "https://codefix.example.com/v1"
    service_api_token: str = ""
    request_timeout_s: float = 30.0

    # Active profile (read once per run)
    profile_arn: str = ""
    profile_region: str = "us-east-1"

    # Files a run may read and overwrite must live under this directory
    workspace_dir: str = "."

    # Reference-license policy
    include_suggestions_with_code_references: bool = True

    # Artifact staging
    artifact_dir: Optional[str] = None
    artifact_ttl_hours: int = 2

    # Job polling
    poll_initial_delay_s: float = 10.0
    poll_interval_s: float = 1.0
    poll_backoff_multiplier: float = 1.0
    poll_max_interval_s: float = 10.0
    poll_timeout_s: float = 120.0
    poll_max_attempts: int = 600

    # Telemetry ("log" or "supabase")
    telemetry_sink: str = "log"
    telemetry_table: str = "code_fix_generation_events"

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""

    log_level: str = "INFO"
    port: int = 8001

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
