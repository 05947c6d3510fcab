"""
Configuration module for database and external service connections.
"""
from .settings import Settings, get_settings
from .database import (
    PostgresConfig,
    NeynarConfig,
    ChainConfig,
    get_postgres_config,
    get_neynar_config,
    get_chain_config,
    create_postgres_pool,
)

__all__ = [
    'Settings',
    'get_settings',
    'PostgresConfig',
    'NeynarConfig',
    'ChainConfig',
    'get_postgres_config',
    'get_neynar_config',
    'get_chain_config',
    'create_postgres_pool',
]
