"""Configuration for hunksmith."""

from hunksmith.config.config_schema import AppConfigSchema, CommitSchema, DiffSchema, RepositorySchema

__all__ = ["AppConfigSchema", "CommitSchema", "DiffSchema", "RepositorySchema"]
