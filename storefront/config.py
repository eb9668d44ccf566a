from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/storefront"
    log_level: str = "INFO"

    # Storefront
    public_base_url: str = "http://localhost:8000"
    brand_name: str = "Bowl & Broth Society"
    currency: str = "usd"
    pickup_timezone: str = "America/Chicago"

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    # Email (Resend)
    resend_api_key: str = ""
    email_from: str = ""

    # SMS (Twilio)
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""

    # Outbound HTTP
    http_timeout: float = 10.0

    # Scheduled jobs
    cron_secret: str = ""
    cron_trusted_header: str = ""

    # Admin auth
    admin_jwt_secret: str = ""
    admin_jwt_algorithm: str = "HS256"
    admin_token_ttl_minutes: int = 60 * 24 * 7
    service_api_key: str = ""

    # Observability
    otlp_endpoint: str = ""

    model_config = {"env_file": ".env"}


settings = Settings()
