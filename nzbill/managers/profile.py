"""
Profile Manager

Holds the user's cash balance, level and display language. A user
without a stored profile gets one with the configured defaults on the
first fetch.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from nzbill.audit import AuditLogger
from nzbill.config import get_settings
from nzbill.managers.base import NOT_SIGNED_IN, ManagerBase
from nzbill.models.bill import OperationResult
from nzbill.models.labels import Language
from nzbill.models.profile import UserProfile, UserSession
from nzbill.services.storage import ProfileStorageInterface, StorageError
from nzbill.utils.dates import current_timestamp


class ProfileManager(ManagerBase):

    entity_type = "profile"

    def __init__(
        self,
        storage: ProfileStorageInterface,
        session: UserSession,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(session, audit_logger)
        self._storage = storage
        self.profile: Optional[UserProfile] = None

    def _default_profile(self) -> UserProfile:
        app_settings = get_settings().app
        return UserProfile(
            user_id=self.user_id,
            balance=app_settings.starting_balance,
            language=Language(app_settings.default_language),
        )

    async def fetch(self) -> Optional[UserProfile]:
        if not self.user_id:
            self.profile = None
            self.loading = False
            return None

        self.loading = True
        try:
            profile = await self._storage.fetch_profile(self.user_id)
            if profile is None:
                profile = self._default_profile()
                self._logger.info("profile_created", user_id=self.user_id)
                await self._storage.save_profile(profile)
            self.profile = profile
            self.error = None
        except StorageError as e:
            await self._fetch_failed(e)
        finally:
            self.loading = False

        return self.profile

    @property
    def language(self) -> Language:
        if self.profile is not None:
            return self.profile.language
        return Language(get_settings().app.default_language)

    async def update_balance(self, balance: Decimal) -> OperationResult:
        return await self._update("update_balance", balance=balance)

    async def update_level(self, level: int) -> OperationResult:
        return await self._update("update_level", level=level)

    async def update_language(self, language: Language) -> OperationResult:
        return await self._update("update_language", language=language)

    async def _update(self, operation: str, **changes: Any) -> OperationResult:
        if not self.user_id:
            return OperationResult.failed(NOT_SIGNED_IN)
        if self.profile is None:
            return OperationResult.failed("Profile has not been loaded")

        snapshot = self.profile
        try:
            updated = UserProfile.model_validate({
                **snapshot.model_dump(),
                **changes,
                "updated_at": current_timestamp(),
            })
        except ValidationError as e:
            return await self._rejected(self.user_id, operation, e)

        self.profile = updated
        try:
            await self._storage.save_profile(updated)
        except StorageError as e:
            self.profile = snapshot
            return await self._rolled_back(self.user_id, operation, e)

        await self._audit.log_profile_updated(
            user_id=self.user_id,
            changes={key: str(value) for key, value in changes.items()},
        )
        return OperationResult.ok()
