# crudwizard/config/settings.py

from functools import lru_cache
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Runtime settings for the wizard, read from the environment or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database (Schema Source) ---
    database_driver: str = Field("mssql+pyodbc")
    database_user: str = Field("sa")
    database_password: SecretStr = Field(SecretStr(""))
    database_host: str = Field("localhost")
    database_port: int = Field(1433)
    database_name: str = Field("master")
    # Extra DSN query string, e.g. "driver=ODBC Driver 18 for SQL Server"
    database_query: str = Field("")
    default_schema_name: str = Field("dbo")

    # --- Manifest API (Manifest Source) ---
    manifest_api_base_url: str = Field("http://localhost:5000")
    manifest_api_timeout_seconds: float = Field(30.0)
    # When true, manifest failures raise instead of falling back.
    manifest_strict: bool = Field(False)

    # --- Storage and output ---
    config_storage_path: str = Field("GeneratedConfigs")
    output_path: str = Field("GeneratedCode")
    templates_path: str = Field("Templates")

    log_level: str = Field("INFO")

    @property
    def database_dsn(self) -> str:
        """Builds the SQLAlchemy DSN for the configured database."""
        query = dict(
            part.split("=", 1) for part in self.database_query.split("&") if "=" in part
        )
        return URL.create(
            drivername=self.database_driver,
            username=self.database_user,
            password=self.database_password.get_secret_value(),
            host=self.database_host,
            port=self.database_port,
            database=self.database_name,
            query=query,
        ).render_as_string(hide_password=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Singleton Instance ---
settings = get_settings()
