"""
Collaborator Configuration
==========================

Connection configuration for every external collaborator the timeline
pipeline talks to: PostgreSQL, the Neynar social API and the Base chain.

Each config is built once (from the environment or from Settings) and
passed into the component that needs it. Components never read the
environment themselves.
"""
import os
from typing import Optional
from dataclasses import dataclass

from .settings import Settings


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""
    host: str
    port: int
    user: str
    password: str
    database: str
    min_size: int = 2
    max_size: int = 10

    @classmethod
    def from_env(cls, min_size: int = 2, max_size: int = 10) -> 'PostgresConfig':
        """Create config from environment variables."""
        host = os.getenv('POSTGRES_HOST')
        if not host:
            raise ValueError("POSTGRES_HOST environment variable is required")

        return cls(
            host=host,
            port=int(os.getenv('POSTGRES_PORT', '5432')),
            user=os.getenv('POSTGRES_USER', 'timeline_user'),
            password=os.getenv('POSTGRES_PASSWORD', ''),
            database=os.getenv('POSTGRES_DB', 'timeline'),
            min_size=min_size,
            max_size=max_size,
        )

    @classmethod
    def from_settings(cls, settings: Settings, min_size: int = 2, max_size: int = 10) -> 'PostgresConfig':
        return cls(
            host=settings.postgres_host,
            port=settings.postgres_port,
            user=settings.postgres_user,
            password=settings.postgres_password,
            database=settings.postgres_db,
            min_size=min_size,
            max_size=max_size,
        )

    def to_asyncpg_kwargs(self) -> dict:
        """Convert to asyncpg.create_pool kwargs."""
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
            'min_size': self.min_size,
            'max_size': self.max_size,
        }


@dataclass
class NeynarConfig:
    """Neynar (Farcaster social API) configuration."""
    api_key: str
    endpoint: str = "https://api.neynar.com/v2/farcaster"
    timeout: float = 10.0
    reaction_limit: int = 25
    search_limit: int = 25

    @classmethod
    def from_env(cls) -> 'NeynarConfig':
        """Create config from environment variables."""
        api_key = os.getenv('NEYNAR_API_KEY')
        if not api_key:
            raise ValueError("NEYNAR_API_KEY environment variable is required")

        return cls(
            api_key=api_key,
            endpoint=os.getenv('NEYNAR_API_URL', cls.endpoint),
            timeout=float(os.getenv('HTTP_TIMEOUT_SECONDS', '10')),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> 'NeynarConfig':
        if not settings.neynar_api_key:
            raise ValueError("NEYNAR_API_KEY is required")

        return cls(
            api_key=settings.neynar_api_key,
            endpoint=settings.neynar_api_url,
            timeout=settings.http_timeout_seconds,
            reaction_limit=settings.reaction_page_limit,
            search_limit=settings.cast_search_limit,
        )

    @property
    def headers(self) -> dict:
        return {
            'x-api-key': self.api_key,
            'x-neynar-experimental': 'false',
        }


@dataclass
class ChainConfig:
    """Base chain configuration for payout (RewardManager) contracts."""
    rpc_url: str
    private_key: Optional[str] = None
    tx_timeout: float = 120.0

    @classmethod
    def from_env(cls) -> 'ChainConfig':
        """Create config from environment variables."""
        rpc_url = os.getenv('BASE_RPC_URL')
        if not rpc_url:
            raise ValueError("BASE_RPC_URL environment variable is required")

        return cls(
            rpc_url=rpc_url,
            private_key=os.getenv('REWARD_MANAGER_PRIVATE_KEY') or None,
            tx_timeout=float(os.getenv('CHAIN_TX_TIMEOUT_SECONDS', '120')),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> 'ChainConfig':
        return cls(
            rpc_url=settings.base_rpc_url,
            private_key=settings.reward_manager_private_key or None,
            tx_timeout=settings.chain_tx_timeout_seconds,
        )


def get_postgres_config(min_size: int = 2, max_size: int = 10) -> PostgresConfig:
    """Get PostgreSQL configuration from environment."""
    return PostgresConfig.from_env(min_size=min_size, max_size=max_size)


def get_neynar_config() -> NeynarConfig:
    """Get Neynar configuration from environment."""
    return NeynarConfig.from_env()


def get_chain_config() -> ChainConfig:
    """Get chain configuration from environment."""
    return ChainConfig.from_env()


async def create_postgres_pool(config: Optional[PostgresConfig] = None):
    """Create PostgreSQL connection pool (from environment config unless given)."""
    import asyncpg
    config = config or get_postgres_config()
    return await asyncpg.create_pool(**config.to_asyncpg_kwargs())
