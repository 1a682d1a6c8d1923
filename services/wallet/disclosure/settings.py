import os
from pydantic import BaseModel


class Settings(BaseModel):
    db_dsn: str = os.getenv("DB_DSN", "postgresql+psycopg2://wallet:wallet@db:5432/wallet")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    key_store_dir: str = os.getenv("KEY_STORE_DIR", "/app/keys")
    jwk_curve: str = os.getenv("JWK_CURVE", "P-256")
    otlp_endpoint: str = os.getenv("OTLP_ENDPOINT", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    wallet_name: str = os.getenv("WALLET_NAME", "uPort")
    default_network: str = os.getenv("DEFAULT_NETWORK", "0x4")
    extra_networks: str = os.getenv("EXTRA_NETWORKS", "")
    profile_resolver_url: str = os.getenv("PROFILE_RESOLVER_URL", "")
    pending_ttl_seconds: int = int(os.getenv("PENDING_TTL_SECONDS", "3600"))
    admin_token: str = os.getenv("ADMIN_TOKEN", "")
    http_host: str = os.getenv("HTTP_HOST", "0.0.0.0")
    http_port: int = int(os.getenv("HTTP_PORT", "8080"))
