"""Auth module - secure storage of the sc2replaystats API token."""

from .keychain import KeychainManager

__all__ = ["KeychainManager"]
