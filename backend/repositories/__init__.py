"""
Repository Pattern - Storage abstraction layer

Repositories hide storage details (PostgreSQL) from business logic.
Consumers work with domain models, not storage-specific types.

Every repository takes an asyncpg pool at construction; the pool is created
once in the app lifespan (config.create_postgres_pool) and shared.

- TimelineRepository: timelines + timeline_supporters
- RewardManagerRepository: pool of pre-deployed payout contracts
"""
from .timeline_repository import TimelineRepository
from .reward_manager_repository import RewardManagerRepository

__all__ = [
    'TimelineRepository',
    'RewardManagerRepository',
]
