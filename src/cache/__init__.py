from .vault_cache import VaultCache

__all__ = ["VaultCache"]
