"""Resolve the single process-wide VAPID key pair."""
from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings
from app.core.webpush.vapid import VapidKeyPair
from app.db.models.system_config import SystemConfig
from app.utils.exceptions import ConfigurationError, StorageError

PUBLIC_KEY_NAME = "vapid_public_key"
PRIVATE_KEY_NAME = "vapid_private_key"


class VapidKeyStore:
    """Load, or generate once, the VAPID key pair shared by every worker.

    Explicit settings take precedence. Otherwise the pair lives in
    ``system_config``; it is generated at most once because both rows are
    inserted in one transaction keyed on ``config_key``, and a process that
    loses the insert race reads back the winner's keys. Keys are never
    rotated: browsers bind each subscription to the public key they saw.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, settings: Settings) -> VapidKeyPair:
        configured = self._from_settings(settings)
        if configured is not None:
            return configured

        stored = self.load()
        if stored is not None:
            return stored

        if not settings.VAPID_AUTO_GENERATE:
            raise ConfigurationError(
                "VAPID keys are not configured and automatic generation is disabled"
            )
        return self.generate()

    def load(self) -> Optional[VapidKeyPair]:
        try:
            rows = self.db.scalars(
                select(SystemConfig).where(
                    SystemConfig.config_key.in_([PUBLIC_KEY_NAME, PRIVATE_KEY_NAME])
                )
            ).all()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to read VAPID keys") from exc

        values = {row.config_key: row.config_value for row in rows}
        if not values:
            return None
        if PUBLIC_KEY_NAME not in values or PRIVATE_KEY_NAME not in values:
            raise ConfigurationError("Stored VAPID key pair is incomplete")

        keys = VapidKeyPair(public_key=values[PUBLIC_KEY_NAME], private_key=values[PRIVATE_KEY_NAME])
        keys.validate()
        return keys

    def generate(self) -> VapidKeyPair:
        keys = VapidKeyPair.generate()
        self.db.add_all(
            [
                SystemConfig(config_key=PUBLIC_KEY_NAME, config_value=keys.public_key),
                SystemConfig(config_key=PRIVATE_KEY_NAME, config_value=keys.private_key),
            ]
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("VAPID keys were generated concurrently, using the stored pair")
            stored = self.load()
            if stored is None:
                raise StorageError("VAPID key insert conflicted but no keys were found")
            return stored
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to store VAPID keys") from exc

        logger.info("Generated and stored new VAPID key pair", public_key=keys.public_key)
        return keys

    @staticmethod
    def _from_settings(settings: Settings) -> Optional[VapidKeyPair]:
        public_key = settings.VAPID_PUBLIC_KEY
        private_key = settings.VAPID_PRIVATE_KEY
        if not public_key and not private_key:
            return None
        if not public_key or not private_key:
            missing = "VAPID_PRIVATE_KEY" if public_key else "VAPID_PUBLIC_KEY"
            raise ConfigurationError(f"VAPID key pair is half configured: {missing} is missing")

        derived = VapidKeyPair.from_private_key(private_key)
        keys = VapidKeyPair(public_key=public_key.strip(), private_key=derived.private_key)
        keys.validate()
        return keys
