"""
Configuration loading for commit_gen.

See :mod:`commit_gen.config.loader` for the search order and validation
rules and :mod:`commit_gen.config.settings` for the resulting types.
"""

from .loader import ConfigError, load_config  # noqa: F401
from .settings import (  # noqa: F401
    Config,
    FormattingPolicy,
    SamplingParams,
    SelectionCriteria,
)
