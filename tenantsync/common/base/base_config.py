# =============================================================================
# File: tenantsync/common/base/base_config.py
# Description: Shared pydantic-settings base for every tenantsync config
# =============================================================================
#
#     class CacheConfig(BaseConfig):
#         model_config = SettingsConfigDict(env_prefix="CACHE_")
#         ttl_user_projection: int = 86400
#
#     @lru_cache(maxsize=1)
#     def get_cache_config() -> CacheConfig:
#         return CacheConfig()
#
# Subclasses declare only env_prefix (and any extra options); pydantic merges
# them with the settings below.
# =============================================================================

from typing import Any, Dict

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_MASK = "**********"


class BaseConfig(BaseSettings):
    """Environment-backed settings: `.env` aware, case-insensitive, secrets as SecretStr."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    def to_dict(self, mask_secrets: bool = True) -> Dict[str, Any]:
        """Plain dict of field values; secrets are masked unless mask_secrets is False."""
        data: Dict[str, Any] = {}
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            if isinstance(value, SecretStr):
                value = _MASK if mask_secrets else value.get_secret_value()
            data[field_name] = value
        return data

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{type(self).__name__}({fields})"
