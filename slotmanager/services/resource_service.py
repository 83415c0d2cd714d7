"""Phone and IP registry service."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slotmanager.models import RESOURCE_MODELS, ResourceKind
from slotmanager.services.admission import RESOURCE_LABELS
from slotmanager.schemas.usage import UsageResponse
from slotmanager.services.allocation_service import AllocationService
from slotmanager.services.errors import DuplicateResource, ResourceNotFound
from slotmanager.services.usage_service import UsageService
from slotmanager.utils.logger import get_logger
from slotmanager.utils.context import set_context
from slotmanager.utils.telemetry import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer()

# Natural key column of each resource kind
NATURAL_KEYS = {
    ResourceKind.PHONE: "phone_number",
    ResourceKind.IP: "ip_address",
}

DUPLICATE_MESSAGES = {
    ResourceKind.PHONE: "Phone number already exists",
    ResourceKind.IP: "IP address already exists",
}


class ResourceService:
    """CRUD for one resource kind, with natural-key uniqueness and cascade."""

    def __init__(
        self,
        kind: ResourceKind,
        allocation_service: Optional[AllocationService] = None,
        usage_service: Optional[UsageService] = None,
    ):
        """Initialize service for ``kind``."""
        self.kind = kind
        self.model = RESOURCE_MODELS[kind]
        self.key_field = NATURAL_KEYS[kind]
        self.label = RESOURCE_LABELS[kind]
        self.usage_service = usage_service or UsageService()
        self.allocation_service = allocation_service or AllocationService(
            usage_service=self.usage_service
        )

    @property
    def key_column(self):
        """Natural key column."""
        return getattr(self.model, self.key_field)

    async def list_resources(
        self,
        session: AsyncSession,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Any]:
        """List resources, newest first."""
        stmt = select(self.model).order_by(self.model.created_at.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count_resources(self, session: AsyncSession) -> int:
        """Count registered resources."""
        result = await session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def get_resource(self, session: AsyncSession, resource_id: str) -> Any:
        """
        Get resource by ID.

        Raises:
            ResourceNotFound: If the resource does not exist
        """
        result = await session.execute(
            select(self.model).where(self.model.id == resource_id)
        )
        resource = result.scalar_one_or_none()
        if resource is None:
            raise ResourceNotFound(f"{self.label} not found")
        return resource

    async def _ensure_unique(
        self,
        session: AsyncSession,
        key: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        stmt = select(self.model.id).where(self.key_column == key)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await session.execute(stmt)
        if result.scalar_one_or_none() is not None:
            raise DuplicateResource(DUPLICATE_MESSAGES[self.kind])

    async def _commit(self, session: AsyncSession) -> None:
        # A concurrent insert can still win the race for the unique key
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise DuplicateResource(DUPLICATE_MESSAGES[self.kind]) from e

    async def create_resource(
        self,
        session: AsyncSession,
        data: Dict[str, Any],
    ) -> Any:
        """
        Register a new resource.

        Args:
            session: Database session
            data: Field values (natural key required)

        Returns:
            Created resource

        Raises:
            DuplicateResource: If the natural key is already registered
        """
        with tracer.start_as_current_span(f"service.{self.kind.value}.create") as _span:
            key = data[self.key_field]
            add_span_attributes(**{"resource.kind": self.kind.value})

            logger.info(
                f"Registering {self.label}",
                extra={"resource_kind": self.kind.value, self.key_field: key},
            )

            await self._ensure_unique(session, key)

            resource = self.model(**data)
            session.add(resource)
            await self._commit(session)
            await session.refresh(resource)

            set_context(resource_kind=self.kind.value, resource_id=resource.id)
            logger.info(
                f"{self.label} registered",
                extra={"resource_kind": self.kind.value, "resource_id": resource.id},
            )

            return resource

    async def update_resource(
        self,
        session: AsyncSession,
        resource_id: str,
        data: Dict[str, Any],
    ) -> Any:
        """
        Update resource fields in place.

        The natural key may change, provided it stays unique.

        Raises:
            ResourceNotFound: If the resource does not exist
            DuplicateResource: If the new natural key is taken
        """
        with tracer.start_as_current_span(f"service.{self.kind.value}.update") as _span:
            add_span_attributes(
                **{"resource.kind": self.kind.value, "resource.id": resource_id}
            )

            resource = await self.get_resource(session, resource_id)

            new_key = data.get(self.key_field)
            if new_key is None:
                data.pop(self.key_field, None)
            elif new_key != getattr(resource, self.key_field):
                await self._ensure_unique(session, new_key, exclude_id=resource_id)

            for field, value in data.items():
                setattr(resource, field, value)

            session.add(resource)
            await self._commit(session)
            await session.refresh(resource)

            logger.info(
                f"{self.label} updated",
                extra={
                    "resource_kind": self.kind.value,
                    "resource_id": resource_id,
                    "fields": sorted(data),
                },
            )

            return resource

    async def delete_resource(self, session: AsyncSession, resource_id: str) -> int:
        """
        Delete a resource together with all of its allocations.

        Both deletes commit in one transaction.

        Returns:
            Number of allocations removed

        Raises:
            ResourceNotFound: If the resource does not exist
        """
        with tracer.start_as_current_span(f"service.{self.kind.value}.delete") as _span:
            add_span_attributes(
                **{"resource.kind": self.kind.value, "resource.id": resource_id}
            )

            try:
                resource = await self.get_resource(session, resource_id)
                removed = await self.allocation_service.cascade_on_resource_delete(
                    session, self.kind, resource_id
                )
                await session.delete(resource)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

            logger.info(
                f"{self.label} deleted",
                extra={
                    "resource_kind": self.kind.value,
                    "resource_id": resource_id,
                    "allocations_removed": removed,
                },
            )

            return removed

    async def get_usage(
        self,
        session: AsyncSession,
        resource_id: str,
        as_of: Optional[datetime] = None,
    ) -> int:
        """
        Current usage of an existing resource.

        Raises:
            ResourceNotFound: If the resource does not exist
        """
        await self.get_resource(session, resource_id)
        return await self.usage_service.usage_for(
            session, self.kind, resource_id, reference=as_of
        )

    async def get_usage_report(
        self,
        session: AsyncSession,
        resource_id: str,
        as_of: Optional[datetime] = None,
    ) -> UsageResponse:
        """Usage of an existing resource with summary figures."""
        await self.get_resource(session, resource_id)
        return await self.usage_service.usage_report(
            session, self.kind, resource_id, reference=as_of
        )
