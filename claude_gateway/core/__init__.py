"""Core functionality"""
from .config import config_from_env, load_config
from .security import verify_api_key

__all__ = ["config_from_env", "load_config", "verify_api_key"]
