from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Property Tokenizer API", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    debug: bool = Field(default=True, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")
    db_user: str = Field(default="tokenizer", alias="DB_USER")
    db_password: str = Field(default="tokenizer", alias="DB_PASSWORD")
    db_name: str = Field(default="tokenizer", alias="DB_NAME")
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=5, alias="DB_MAX_OVERFLOW")
    db_auto_create: bool = Field(default=False, alias="DB_AUTO_CREATE")
    encryption_key: str = Field(
        default="0123456789abcdeffedcba98765432100123456789abcdeffedcba9876543210",
        alias="ENCRYPTION_KEY",
    )

    jwt_secret_key: str = Field(default="tokenizer-secret", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_issuer: str = Field(default="tokenizer-platform", alias="JWT_ISSUER")
    jwt_audience: str = Field(default="tokenizer-users", alias="JWT_AUDIENCE")
    access_token_expire_minutes: int = Field(
        default=30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    refresh_token_expire_days: int = Field(default=7, alias="REFRESH_TOKEN_EXPIRE_DAYS")
    password_hash_rounds: int = Field(default=12, alias="PASSWORD_HASH_ROUNDS")

    default_blockchain: str = Field(default="SEPOLIA", alias="DEFAULT_BLOCKCHAIN")
    sepolia_rpc_url: str | None = Field(default=None, alias="SEPOLIA_RPC_URL")
    polygon_rpc_url: str | None = Field(default=None, alias="POLYGON_RPC_URL")
    mainnet_rpc_url: str | None = Field(default=None, alias="MAINNET_RPC_URL")
    blockchain_rpc_timeout: float = Field(default=10.0, alias="BLOCKCHAIN_RPC_TIMEOUT")
    blockchain_mock_mode: bool = Field(default=True, alias="BLOCKCHAIN_MOCK_MODE")
    verify_tx_on_confirm: bool = Field(default=False, alias="VERIFY_TX_ON_CONFIRM")

    kyc_provider: str = Field(default="sumsub", alias="KYC_PROVIDER")
    sumsub_base_url: str | None = Field(default=None, alias="SUMSUB_BASE_URL")
    sumsub_app_token: str | None = Field(default=None, alias="SUMSUB_APP_TOKEN")
    sumsub_secret_key: str | None = Field(default=None, alias="SUMSUB_SECRET_KEY")
    sumsub_level_name: str = Field(default="basic-kyc-level", alias="SUMSUB_LEVEL_NAME")
    kyc_webhook_secret: str = Field(default="kyc-webhook-secret", alias="KYC_WEBHOOK_SECRET")
    kyc_mock_mode: bool = Field(default=True, alias="KYC_MOCK_MODE")
    kyc_timeout: float = Field(default=10.0, alias="KYC_TIMEOUT")
    kyc_session_ttl_minutes: int = Field(default=60, alias="KYC_SESSION_TTL_MINUTES")
    kyc_redirect_url: str = Field(
        default="http://localhost:5173/kyc/complete",
        alias="KYC_REDIRECT_URL",
    )

    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")
    google_client_secret: str | None = Field(default=None, alias="GOOGLE_CLIENT_SECRET")
    azure_client_id: str | None = Field(default=None, alias="AZURE_CLIENT_ID")
    azure_client_secret: str | None = Field(default=None, alias="AZURE_CLIENT_SECRET")
    azure_tenant_id: str = Field(default="common", alias="AZURE_TENANT_ID")
    oauth_redirect_uri: str = Field(
        default="http://localhost:5173/auth/callback",
        alias="OAUTH_REDIRECT_URI",
    )
    oauth_timeout: float = Field(default=10.0, alias="OAUTH_TIMEOUT")
    oauth_mock_mode: bool = Field(default=True, alias="OAUTH_MOCK_MODE")

    document_storage_dir: str = Field(default="uploads/documents", alias="DOCUMENT_STORAGE_DIR")
    document_max_bytes: int = Field(default=10 * 1024 * 1024, alias="DOCUMENT_MAX_BYTES")
    document_allowed_types: str = Field(
        default="application/pdf,image/jpeg,image/png,image/webp,text/plain",
        alias="DOCUMENT_ALLOWED_TYPES",
    )
    virus_scan_enabled: bool = Field(default=False, alias="VIRUS_SCAN_ENABLED")
    virus_scan_command: str | None = Field(default=None, alias="VIRUS_SCAN_COMMAND")

    visit_rate_limit_minutes: int = Field(default=30, alias="VISIT_RATE_LIMIT_MINUTES")
    trending_window_days: int = Field(default=7, alias="TRENDING_WINDOW_DAYS")

    notification_webhook_url: str | None = Field(default=None, alias="NOTIFICATION_WEBHOOK_URL")
    notification_webhook_timeout: float = Field(default=5.0, alias="NOTIFICATION_WEBHOOK_TIMEOUT")

    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    session_cleanup_interval_minutes: int = Field(
        default=60,
        alias="SESSION_CLEANUP_INTERVAL_MINUTES",
    )
    kyc_sync_enabled: bool = Field(default=True, alias="KYC_SYNC_ENABLED")
    kyc_sync_interval_seconds: int = Field(default=300, alias="KYC_SYNC_INTERVAL_SECONDS")
    kyc_sync_batch_size: int = Field(default=100, alias="KYC_SYNC_BATCH_SIZE")

    model_config = SettingsConfigDict(
        env_file=(".env", ),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def encryption_key_bytes(self) -> bytes:
        return bytes.fromhex(self.encryption_key)

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def allowed_document_types(self) -> set[str]:
        return {item.strip() for item in self.document_allowed_types.split(",") if item.strip()}

    def rpc_url_for(self, network: str) -> str | None:
        return {
            "SEPOLIA": self.sepolia_rpc_url,
            "POLYGON": self.polygon_rpc_url,
            "MAINNET": self.mainnet_rpc_url,
        }.get(network.upper())


settings = Settings()
