# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Configuration module for the Player Registry API service.

Loads environment variables and provides validated settings.
"""

from functools import lru_cache
from typing import Literal
from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables
    (e.g. STORAGE_BACKEND=firestore, PLAYERS_DEFAULT_PAGE_SIZE=10).
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Service Configuration
    service_environment: Literal["dev", "staging", "prod"] = Field(
        default="dev", description="The environment the service is running in"
    )
    service_name: str = Field(
        default="player-registry", description="The name of this service"
    )

    # Storage Configuration
    storage_backend: Literal["memory", "firestore"] = Field(
        default="memory",
        description="Where player records are kept: in-process memory or Firestore",
    )

    # GCP Configuration
    gcp_project_id: str = Field(
        default="", description="GCP Project ID - REQUIRED for Firestore outside dev"
    )

    # Firestore Configuration
    firestore_players_collection: str = Field(
        default="players", description="Firestore collection name for players"
    )
    firestore_counters_collection: str = Field(
        default="counters",
        description="Firestore collection holding the player id sequence document",
    )
    firestore_emulator_host: str = Field(
        default="",
        description="Firestore emulator host (e.g., localhost:8080) for local development",
    )

    # Build Metadata (Optional)
    build_version: str = Field(
        default="0.1.0", description="Version/tag of the current build"
    )
    build_commit: str = Field(
        default="", description="Git commit SHA of the current build"
    )
    build_timestamp: str = Field(
        default="", description="Build timestamp (ISO 8601 format)"
    )

    # API Configuration
    api_host: str = Field(default="127.0.0.1", description="Host to bind the server to")
    api_port: int = Field(default=8080, description="Port to bind the server to")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    request_id_header: str = Field(
        default="X-Request-ID",
        description="Header name for request ID (for load balancer compatibility)",
    )

    # Player Query Configuration
    players_default_page_size: int = Field(
        default=3,
        ge=1,
        description="Page size used by GET /rest/players when pageSize is omitted",
    )

    @field_validator("gcp_project_id")
    @classmethod
    def validate_gcp_project_id(cls, v: str, info: ValidationInfo) -> str:
        """Validate GCP project ID is provided when Firestore backs a non-dev deploy."""
        environment = info.data.get("service_environment", "dev")
        backend = info.data.get("storage_backend", "memory")
        if backend == "firestore" and environment in ["staging", "prod"] and not v:
            raise ValueError(f"GCP_PROJECT_ID is required in {environment} environment")
        return v


# ==============================================================================
# Player Constraints
# ==============================================================================

MAX_NAME_LENGTH = 12
MAX_TITLE_LENGTH = 30
MIN_EXPERIENCE = 0
MAX_EXPERIENCE = 10_000_000


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings.

    Returns a cached instance of Settings to avoid reloading from environment
    on every call.
    """
    return Settings()
