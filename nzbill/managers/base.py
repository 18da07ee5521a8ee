"""
Optimistic State Management

Managers own an in-memory copy of the user's data and keep it in sync
with storage. Mutations are applied locally first and then sent to
storage; if storage rejects the write, only the affected entity is put
back the way it was. Changes to other entities made while the write was
in flight are left alone.
"""

from typing import Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from nzbill.audit import AuditLogger
from nzbill.config.logging import get_logger
from nzbill.models.audit import AuditEventType
from nzbill.models.bill import OperationResult
from nzbill.models.profile import UserSession
from nzbill.services.storage import StorageError
from nzbill.utils.dates import current_timestamp


NOT_SIGNED_IN = "No user is signed in"

T = TypeVar("T", bound=BaseModel)


class ManagerBase:
    """
    Shared state for every manager.

    `loading` starts True and drops to False once the first fetch
    finishes, successfully or not. `error` holds the message of the
    most recent storage failure.
    """

    entity_type = "entity"

    def __init__(
        self,
        session: UserSession,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session = session
        self._audit = audit_logger or AuditLogger()
        self._logger = get_logger(self.__class__.__module__)
        self.loading = True
        self.error: Optional[str] = None

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id

    async def _fetch_failed(self, error: StorageError) -> None:
        self.error = str(error)
        self._logger.error(
            "fetch_failed",
            entity_type=self.entity_type,
            user_id=self.user_id,
            error=str(error),
        )
        await self._audit.log_storage_failed(
            event_type=AuditEventType.FETCH_FAILED,
            entity_type=self.entity_type,
            error_message=str(error),
            user_id=self.user_id,
        )

    async def _save_failed(self, error: StorageError) -> None:
        self.error = str(error)
        self._logger.error(
            "save_failed",
            entity_type=self.entity_type,
            user_id=self.user_id,
            error=str(error),
        )
        await self._audit.log_storage_failed(
            event_type=AuditEventType.SAVE_FAILED,
            entity_type=self.entity_type,
            error_message=str(error),
            user_id=self.user_id,
        )

    async def _rolled_back(
        self,
        entity_id: str,
        operation: str,
        error: StorageError,
    ) -> OperationResult:
        self.error = str(error)
        self._logger.warning(
            "optimistic_rollback",
            entity_type=self.entity_type,
            entity_id=entity_id,
            operation=operation,
            error=str(error),
        )
        await self._audit.log_rollback(
            entity_type=self.entity_type,
            entity_id=entity_id,
            operation=operation,
            error_message=str(error),
            user_id=self.user_id,
        )
        return OperationResult.failed(str(error), rolled_back=True)

    async def _rejected(
        self,
        entity_id: str,
        operation: str,
        error: ValidationError,
    ) -> OperationResult:
        """Report an update whose result would not be a valid entity."""
        fields = sorted({str(err["loc"][0]) for err in error.errors() if err["loc"]})
        message = f"Invalid {self.entity_type} update: {', '.join(fields)}"
        self._logger.warning(
            "update_rejected",
            entity_type=self.entity_type,
            entity_id=entity_id,
            operation=operation,
            fields=fields,
        )
        await self._audit.log_validation_failed(
            entity_type=self.entity_type,
            issues=[
                {"field": str(err["loc"][0]) if err["loc"] else "", "message": err["msg"]}
                for err in error.errors()
            ],
        )
        return OperationResult.failed(message)


class CollectionManager(ManagerBase, Generic[T]):
    """
    A manager over a list of entities that carry an `id`.

    Subclasses expose the list under a domain name (`bills`, `expenses`).
    """

    def __init__(
        self,
        session: UserSession,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(session, audit_logger)
        self._items: list[T] = []

    def _find(self, entity_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None

    def _position(self, entity_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == entity_id:
                return index
        return -1

    def _apply(self, entity_id: str, replacement: Optional[T]) -> None:
        """Replace the entity in place, or drop it when replacement is None."""
        index = self._position(entity_id)
        if index < 0:
            return
        if replacement is None:
            del self._items[index]
        else:
            self._items[index] = replacement

    def _revise(self, entity: T, fields: dict) -> T:
        """
        Apply changed fields and validate the whole entity again.

        Raises:
            ValidationError: If the result breaks a field constraint
        """
        data = {**entity.model_dump(), **fields, "updated_at": current_timestamp()}
        return type(entity).model_validate(data)

    def _restore(self, snapshot: T, index: int) -> None:
        """Put a snapshot back, re-inserting it if it was removed."""
        current = self._position(snapshot.id)
        if current >= 0:
            self._items[current] = snapshot
        else:
            self._items.insert(min(index, len(self._items)), snapshot)

    async def _optimistic(
        self,
        entity_id: str,
        operation: str,
        transition: Callable[[T], Optional[T]],
        remote: Callable[[], Awaitable[None]],
    ) -> OperationResult:
        """
        Run one optimistic transaction.

        Args:
            entity_id: Entity the operation touches
            operation: Name used in logs and audit events
            transition: Maps the current entity to its new state
                        (None removes it)
            remote: Performs the storage call

        Returns:
            OperationResult; on a storage failure the entity is restored
            and `rolled_back` is True. A transition that raises
            ValidationError fails the operation before anything changes.
        """
        if not self.user_id:
            return OperationResult.failed(NOT_SIGNED_IN)

        snapshot = self._find(entity_id)
        if snapshot is None:
            return OperationResult.failed(
                f"{self.entity_type} not found: {entity_id}"
            )

        try:
            replacement = transition(snapshot)
        except ValidationError as e:
            return await self._rejected(entity_id, operation, e)

        index = self._position(entity_id)
        self._apply(entity_id, replacement)

        try:
            await remote()
        except StorageError as e:
            self._restore(snapshot, index)
            return await self._rolled_back(entity_id, operation, e)

        return OperationResult.ok()
