from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_env: str = "local"
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"

    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_db: str = "keysmith"
    postgres_user: str = "keysmith"
    postgres_password: str = "keysmith"

    # shared secret between the identity proxy and this service
    session_proxy_token: str = ""

    key_prefix: str = "sk"
    key_secret_bytes: int = 32
    key_generation_attempts: int = 3

    github_api_url: str = "https://api.github.com"
    http_timeout_seconds: float = 10.0

    summarizer_model: str = "gpt-3.5-turbo"
    summarizer_temperature: float = 0.7

    @property
    def postgres_dsn(self) -> str:
        # asyncpg DSN
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()  # reads from environment
