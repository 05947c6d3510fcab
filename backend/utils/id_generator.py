"""
Short prefixed ID generator for Timeline entities.

Format: {prefix}_{base36_random}
- tl_xxxxxxxx  - timeline
- rm_xxxxxxxx  - reward manager (payout contract pool row)

8 chars base36 = 36^8 = 2.8 trillion unique IDs per type
Total length: 11 chars (2 prefix + 1 separator + 8 random)
"""
import secrets
import re

# Base36 alphabet (lowercase letters + digits)
ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BASE = len(ALPHABET)  # 36

# Valid prefixes
PREFIXES = {
    'timeline': 'tl',
    'reward_manager': 'rm',
}

# Regex for validation
ID_PATTERN = re.compile(r'^(tl|rm)_[0-9a-z]{8}$')


def _random_base36(length: int = 8) -> str:
    """Generate random base36 string"""
    return ''.join(ALPHABET[secrets.randbelow(BASE)] for _ in range(length))


def generate_id(entity_type: str) -> str:
    """
    Generate a new short ID for the given entity type.

    Args:
        entity_type: One of 'timeline', 'reward_manager'

    Returns:
        Short ID like 'tl_x5b8r2yj'

    Raises:
        ValueError: If entity_type is invalid
    """
    if entity_type not in PREFIXES:
        raise ValueError(f"Invalid entity type: {entity_type}. "
                         f"Must be one of: {list(PREFIXES.keys())}")

    return f"{PREFIXES[entity_type]}_{_random_base36(8)}"


def validate_id(id_str: str) -> bool:
    """Check if a string is a valid short ID."""
    if not id_str or not isinstance(id_str, str):
        return False
    return bool(ID_PATTERN.match(id_str))


def generate_timeline_id() -> str:
    """Generate a new timeline ID"""
    return generate_id('timeline')


def generate_reward_manager_id() -> str:
    """Generate a new reward manager pool ID"""
    return generate_id('reward_manager')
