"""
Feature Flags Configuration

Centralized feature flag management for the completion engine.
All feature flags are loaded from environment variables.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


class FeatureFlags:
    """
    Feature flags for the application.

    Services read these at call time, so tests can patch the class
    attributes directly.
    """

    # Run the lecture cascade when a question is marked completed
    FEATURE_CASCADE_ON_COMPLETION: bool = get_bool_env('FEATURE_CASCADE_ON_COMPLETION', True)

    # Evaluate each distinct lecture once per trigger instead of once per
    # referencing assignment
    CASCADE_BATCH_BY_LECTURE: bool = get_bool_env('CASCADE_BATCH_BY_LECTURE', False)

    # slowapi limits on the write endpoints
    RATE_LIMIT_ENABLED: bool = get_bool_env('RATE_LIMIT_ENABLED', True)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: value
            for key, value in vars(cls).items()
            if not key.startswith('_') and isinstance(value, bool)
        }


feature_flags = FeatureFlags()
