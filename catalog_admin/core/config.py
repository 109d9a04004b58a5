from pydantic_settings import BaseSettings
from pydantic import Field
import os
import tempfile
from pathlib import Path
from typing import List, Literal


class Config(BaseSettings):
    # Database Configuration (SQLite via aiosqlite by default, PostgreSQL via asyncpg)
    database_url: str = Field(
        default=f"sqlite+aiosqlite:///{Path(__file__).parent.parent.parent / 'data' / 'catalog.db'}",
        alias="DB_URL",
    )

    # File host configuration
    upload_backend: Literal["http", "gcs"] = Field(default="http", alias="UPLOAD_BACKEND")
    upload_endpoint: str = Field(default="", alias="UPLOAD_ENDPOINT")
    upload_field_name: str = Field(default="file", alias="UPLOAD_FIELD_NAME")

    # Google Cloud Storage (UPLOAD_BACKEND=gcs)
    gcp_project_id: str = Field(default="", alias="GCP_PROJECT_ID")
    gcp_bucket_name: str = Field(default="", alias="GCP_BUCKET_NAME")
    gcp_product_images_prefix: str = Field(
        default="product-images/", alias="GCP_PRODUCT_IMAGES_PREFIX"
    )

    # Image staging rules
    max_image_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_IMAGE_BYTES")
    max_images_per_color: int = Field(default=9, alias="MAX_IMAGES_PER_COLOR")
    upload_concurrency: int = Field(default=9, ge=1, alias="UPLOAD_CONCURRENCY")
    preview_dir: str = Field(
        default=str(Path(tempfile.gettempdir()) / "catalog_admin_previews"),
        alias="PREVIEW_DIR",
    )

    # "discard": switching product/color drops unsaved staged images silently
    # "confirm": switching with unsaved changes fails unless forced
    selection_change_policy: Literal["discard", "confirm"] = Field(
        default="discard", alias="SELECTION_CHANGE_POLICY"
    )

    # Update is_primary on every sibling row of an existing image. When off,
    # only the row the staging entry was built from is updated and copies of
    # the same image can disagree until corrected
    fan_out_existing_updates: bool = Field(
        default=True, alias="FAN_OUT_EXISTING_UPDATES"
    )

    cors_origins: List[str] = Field(
        default=["http://localhost", "http://localhost:5173"], alias="CORS_ORIGINS"
    )

    is_production: bool = (
        os.getenv("ENVIRONMENT", "development").lower() == "production"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True


# Instantiate the settings
config = Config()
