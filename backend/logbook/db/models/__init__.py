"""Database models."""

from logbook.db.models.app_setting import AppSetting

__all__ = ["AppSetting"]
