# Utils module for Deucalion
from .env_flags import is_truthy, is_truthy_env
from .logging_utils import setup_logging

__all__ = ["is_truthy", "is_truthy_env", "setup_logging"]
