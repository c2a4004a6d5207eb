from typing import (
    Any,
    TypeVar,
    Generic,
    Type,
    Sequence,
)
from uuid import UUID

from sqlalchemy import (
    SQLColumnExpression,
    UnaryExpression,
    and_,
    or_,
    update as sa_update,
    delete as sa_delete,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select, Delete, Update, operators

from app.core.exceptions.types import DatabaseException

T = TypeVar("T")


def _split_order(column: Any) -> tuple[Any, bool]:
    """Return the bare column of an ORDER BY expression and whether it is descending."""
    if isinstance(column, UnaryExpression) and column.modifier in (
        operators.asc_op,
        operators.desc_op,
    ):
        return column.element, column.modifier is operators.desc_op
    return column, False


class BaseDB(Generic[T]):
    """
    Generic async CRUD helper bound to one model.

    Every method wraps ``SQLAlchemyError`` into :class:`DatabaseException`.
    Writing methods take ``commit_self``: when True the session is committed,
    otherwise it is only flushed so the caller's transaction decides.
    """

    def __init__(self, model: Type[T]):
        self.model = model

    async def _finish(self, session: AsyncSession, commit_self: bool) -> None:
        if commit_self:
            await session.commit()
        else:
            await session.flush()

    async def get_by_id(
        self, session: AsyncSession, id: UUID, options: list[Any] | None = None
    ) -> T | None:
        """
        Retrieve one instance by primary key.

        Args:
            session (AsyncSession): The session to query with.
            id (UUID): Primary key value.
            options (list[Any] | None): Loader options such as ``selectinload``.

        Returns:
            T | None: The instance, or None if no row has that id.

        Raises:
            DatabaseException: If the query fails.
        """
        try:
            stmt: Select = (
                select(self.model)
                .options(*(options or []))
                .where(getattr(self.model, "id") == id)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def get_all(
        self,
        session: AsyncSession,
        filters: list[Any] | None = None,
        order_by: list[Any] | None = None,
        last_values: tuple | None = None,
        limit: int | None = None,
        options: list[Any] | None = None,
    ) -> Sequence[T]:
        """
        Retrieve filtered rows using keyset pagination.

        ``last_values`` holds the ORDER BY values of the last row of the
        previous page; only rows strictly after it (in ``order_by`` order) are
        returned.

        Args:
            session: Async SQLAlchemy session.
            filters: Extra WHERE clauses.
            order_by: Columns/expressions to order by. Must be deterministic.
            last_values: Keyset position to continue from.
            limit: Maximum number of rows.
            options: Loader options.

        Returns:
            A sequence of model instances.
        """
        try:
            stmt = select(self.model).options(*(options or []))

            if filters:
                stmt = stmt.filter(*filters)

            if order_by and last_values:
                if len(order_by) != len(last_values):
                    raise ValueError("Cursor length mismatch")

                columns = [_split_order(col) for col in order_by]
                keyset_conditions = []
                for i, (column, is_desc) in enumerate(columns):
                    prefix = [columns[j][0] == last_values[j] for j in range(i)]
                    cmp = column < last_values[i] if is_desc else column > last_values[i]
                    keyset_conditions.append(and_(*prefix, cmp))

                stmt = stmt.filter(or_(*keyset_conditions))

            if order_by:
                stmt = stmt.order_by(*order_by)

            if limit:
                stmt = stmt.limit(limit)

            result = await session.execute(stmt)
            return result.scalars().all()

        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error retrieving all {self.model.__name__} records: {str(e)}"
            ) from e

    async def get_one_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        options: list[Any] | None = None,
    ) -> T | None:
        """
        Retrieve the first row matching all SQL ``conditions``.

        Raises:
            DatabaseException: If the query fails.
        """
        try:
            stmt = select(self.model).options(*(options or [])).where(and_(*conditions))
            result = await session.execute(stmt)
            return result.scalars().first()
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error retrieving one {self.model.__name__} with conditions: {str(e)}"
            ) from e

    async def create(
        self,
        session: AsyncSession,
        data: dict,
        commit_self: bool = True,
    ) -> T:
        """
        Create and persist a new instance.

        Args:
            session (AsyncSession): The session to write with.
            data (dict): Column values for the new row.
            commit_self (bool): Commit when True, flush otherwise.

        Returns:
            T: The persisted instance, refreshed from the database.

        Raises:
            DatabaseException: If the insert fails (including unique violations).
        """
        try:
            obj = self.model(**data)
            session.add(obj)
            await self._finish(session, commit_self)
            await session.refresh(obj)
            return obj
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error creating {self.model.__name__}: {str(e)}"
            ) from e

    async def update(
        self, session: AsyncSession, id: UUID, updates: dict, commit_self: bool = True
    ) -> T | None:
        """
        Update the row with the given id.

        Args:
            session (AsyncSession): The session to write with.
            id (UUID): Primary key of the row.
            updates (dict): Column values to set.
            commit_self (bool): Commit when True, flush otherwise.

        Returns:
            T | None: The updated instance, or None if no row has that id.

        Raises:
            DatabaseException: If the update fails.
        """
        try:
            stmt: Update = (
                sa_update(self.model)
                .where(self.model.id == id)  # type: ignore[attr-defined]
                .values(**updates)
                .returning(self.model)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            obj = result.scalar_one_or_none()
            await self._finish(session, commit_self)
            return obj
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def update_by_conditions(
        self,
        session: AsyncSession,
        conditions: list[SQLColumnExpression],
        updates: dict,
        commit_self: bool = True,
    ) -> int:
        """
        Update every row matching ``conditions``.

        Returns:
            int: The number of rows updated.

        Raises:
            DatabaseException: If the update fails.
        """
        try:
            stmt: Update = (
                sa_update(self.model).where(and_(*conditions)).values(**updates)
            )
            result = await session.execute(stmt)
            await self._finish(session, commit_self)
            return result.rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with conditions: {str(e)}"
            ) from e

    async def delete(
        self, session: AsyncSession, id: UUID, commit_self: bool = True
    ) -> bool:
        """
        Delete the row with the given id.

        Returns:
            bool: True if a row was deleted.

        Raises:
            DatabaseException: If the delete fails.
        """
        try:
            stmt: Delete = sa_delete(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
            result = await session.execute(stmt)
            await self._finish(session, commit_self)
            return result.rowcount > 0  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error deleting {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def delete_by_conditions(
        self,
        session: AsyncSession,
        conditions: list[SQLColumnExpression],
        commit_self: bool = True,
    ) -> int:
        """
        Delete every row matching ``conditions``.

        Returns:
            int: The number of rows deleted.

        Raises:
            DatabaseException: If the delete fails.
        """
        try:
            stmt: Delete = sa_delete(self.model).where(and_(*conditions))
            result = await session.execute(stmt)
            await self._finish(session, commit_self)
            return result.rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error deleting {self.model.__name__} with conditions: {str(e)}"
            ) from e

    async def exists(self, session: AsyncSession, conditions: list[Any]) -> bool:
        """
        Check whether any row matches ``conditions``.

        Raises:
            DatabaseException: If the query fails.
        """
        try:
            stmt = select(self.model.id).where(and_(*conditions)).limit(1)  # type: ignore[attr-defined]
            result = await session.execute(stmt)
            return result.first() is not None
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error checking existence of {self.model.__name__}: {str(e)}"
            ) from e


__all__ = ["BaseDB"]
