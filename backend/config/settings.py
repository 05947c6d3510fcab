from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file (for secrets like NEYNAR_API_KEY, REWARD_MANAGER_PRIVATE_KEY)
    - System environment

    Variable names match docker-compose conventions:
    - POSTGRES_HOST, POSTGRES_PORT, etc. (for database)
    - NEYNAR_API_KEY, NEYNAR_API_URL (for the Farcaster social API)
    - BASE_RPC_URL, REWARD_MANAGER_PRIVATE_KEY (for payout contracts on Base)
    """

    # Environment
    environment: str = "development"

    # PostgreSQL (from docker-compose)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "timeline_user"
    postgres_password: str = "timeline_pass"
    postgres_db: str = "timeline"
    database_url: Optional[str] = None

    # Neynar (from .env)
    neynar_api_key: str = ""
    neynar_api_url: str = "https://api.neynar.com/v2/farcaster"

    # Base chain
    base_rpc_url: str = "https://mainnet.base.org"
    reward_manager_private_key: str = ""
    chain_tx_timeout_seconds: float = 120.0
    # Claims older than this are assumed abandoned by a crashed run
    stale_claim_seconds: float = 900.0

    # External call budgets
    http_timeout_seconds: float = 10.0
    address_cache_ttl_seconds: int = 300
    reaction_page_limit: int = 25
    cast_search_limit: int = 25

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('database_url', mode='before')
    @classmethod
    def construct_database_url(cls, v, info):
        """Construct database URL from components if not explicitly set"""
        if v:
            return v

        data = info.data
        host = data.get('postgres_host', 'localhost')
        port = data.get('postgres_port', 5432)
        user = data.get('postgres_user', 'timeline_user')
        password = data.get('postgres_password', 'timeline_pass')
        db = data.get('postgres_db', 'timeline')

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    @field_validator('reaction_page_limit', 'cast_search_limit')
    @classmethod
    def check_page_limit(cls, v):
        """Neynar caps list endpoints at 100 items per page"""
        if not 1 <= v <= 100:
            raise ValueError("page limits must be between 1 and 100")
        return v

    @field_validator('stale_claim_seconds')
    @classmethod
    def check_stale_claim_age(cls, v, info):
        """A live run holds its claim for up to the tx timeout"""
        tx_timeout = info.data.get('chain_tx_timeout_seconds', 120.0)
        if v <= tx_timeout:
            raise ValueError("stale_claim_seconds must exceed chain_tx_timeout_seconds")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
