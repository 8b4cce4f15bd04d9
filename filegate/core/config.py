"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # TELEGRAM BOT
    # ===========================================
    telegram_bot_token: str  # Required, no default
    # Username бота без @ (для ссылок вида https://t.me/<bot>?start=get_<key>)
    telegram_bot_username: str = ""
    # Приватный канал-источник, посты из него превращаются в контент с ключом
    source_channel_id: int  # Required, no default

    # ===========================================
    # MEMBERSHIP GATE
    # ===========================================
    # JSON-массив каналов: [{"ref": "@channel", "title": "Main", "url": "https://t.me/channel"}]
    # Пусто ("[]") = доступ без проверки подписки.
    gate_channels: str = "[]"
    # all = нужно состоять во всех каналах, any = хотя бы в одном
    gate_policy: str = "all"

    # ===========================================
    # DELIVERY
    # ===========================================
    delivery_grace_seconds: int = 30
    delivery_notice_text: str = (
        "⏱️ This file will be deleted from the chat in {seconds} seconds. "
        "Forward it to Saved Messages to keep it."
    )

    # ===========================================
    # KEYS & PENDING REQUESTS
    # ===========================================
    key_length: int = 9
    key_issue_max_attempts: int = 5
    pending_request_ttl: int = 0  # 0 = хранить до consume/перезаписи
    state_secret: str  # Required, no default (подпись pending-запросов)

    # ===========================================
    # SOURCE POST ANNOTATION
    # ===========================================
    annotation_max_attempts: int = 3
    annotation_base_delay_seconds: float = 2.0
    annotation_max_retry_after_seconds: float = 60.0

    # ===========================================
    # DELETION LOOP & RECONCILIATION
    # ===========================================
    ticket_scan_interval_seconds: float = 10.0
    ticket_batch_size: int = 100
    ticket_claim_lease_seconds: int = 300
    # Служебный чат для проверки существования постов (copyMessage + delete). Пусто = только push.
    reconcile_chat_id: str = ""
    reconcile_interval_minutes: int = 5
    reconcile_batch_size: int = 100

    # ===========================================
    # ADMIN API
    # ===========================================
    admin_api_key: str | None = None  # Optional, but recommended

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # ===========================================
    # HTTP
    # ===========================================
    http_client_timeout: float = 30.0

    @field_validator("gate_policy")
    @classmethod
    def validate_gate_policy(cls, v: str) -> str:
        """Only AND/OR aggregation is supported."""
        v = v.strip().lower()
        if v not in ("all", "any"):
            raise ValueError("gate_policy must be 'all' or 'any'")
        return v

    @field_validator("key_length")
    @classmethod
    def validate_key_length(cls, v: int) -> int:
        if v < 6:
            raise ValueError("key_length must be at least 6")
        return v

    @field_validator("state_secret")
    @classmethod
    def validate_state_secret(cls, v: str) -> str:
        """Ensure state secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("state_secret must be at least 16 characters")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Игнорировать неизвестные поля из .env


settings = Settings()
