"""
Utility functions
"""
from .id_generator import (
    generate_timeline_id,
    generate_reward_manager_id,
    validate_id,
)

__all__ = [
    'generate_timeline_id',
    'generate_reward_manager_id',
    'validate_id',
]
