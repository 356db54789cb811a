from typing import (
    Any,
    TypeVar,
    Generic,
    Type,
    Sequence,
    Callable,
)

from sqlalchemy import (
    SQLColumnExpression,
    and_,
    update as sa_update,
    delete as sa_delete,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Delete, Update

from app.core.exceptions.types import DatabaseException

T = TypeVar("T")


class BaseDB(Generic[T]):
    def __init__(self, model: Type[T]):
        self.model = model

    async def get_one_by_filters(
        self,
        session: AsyncSession,
        filters: dict,
        options: list[Any] = [],
        populate_existing: bool = False,
    ) -> T | None:
        """
        Asynchronously retrieves a single record of the model that matches the given filters.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            filters (dict): Equality filters applied with ``filter_by``.
            options (list[Any], optional): SQLAlchemy loader options. Defaults to empty list.
            populate_existing (bool, optional): Overwrite an already-loaded instance with the row just read. Defaults to False.

        Returns:
            T | None: The first matching instance, otherwise None.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*options).filter_by(**filters)
            if populate_existing:
                stmt = stmt.execution_options(populate_existing=True)
            result = await session.execute(stmt)
            return result.scalars().first()
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving one {self.model.__name__} with filters {filters}: {str(e)}"
            ) from e

    async def get_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        order_by: list[Any] | None = None,
        options: list[Any] = [],
    ) -> Sequence[T]:
        """
        Asynchronously retrieves records of the model that match the given conditions.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            conditions (Sequence[SQLColumnExpression]): SQLAlchemy expressions combined with AND.
            order_by (list[Any] | None, optional): Ordering expressions. Defaults to None.
            options (list[Any], optional): SQLAlchemy loader options. Defaults to empty list.

        Returns:
            Sequence[T]: The matching model instances.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*options).where(and_(*conditions))
            if order_by:
                stmt = stmt.order_by(*order_by)
            result = await session.execute(stmt)
            return result.scalars().all()
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def get_one_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        options: list[Any] = [],
    ) -> T | None:
        """
        Asynchronously retrieves a single record of the model that matches the given conditions.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*options).where(and_(*conditions))
            result = await session.execute(stmt)
            return result.scalars().first()
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving one {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def create(
        self,
        session: AsyncSession,
        data: dict,
        validate: Callable[[dict], dict] | None = None,
        commit_self: bool = True,
    ) -> T:
        """
        Asynchronously creates and persists a new instance of the model using the provided data.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use for database operations.
            data (dict): Fields and values to initialize the model instance.
            validate (Callable[[dict], dict] | None, optional): Optional callable to validate or transform the data first.
            commit_self (bool, optional): If True, commits; otherwise only flushes. Defaults to True.

        Returns:
            T: The newly created and persisted model instance.

        Raises:
            DatabaseException: If an error occurs while creating the instance or committing.
        """
        try:
            if validate:
                data = validate(data)

            obj = self.model(**data)
            session.add(obj)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            await session.refresh(obj)
            return obj
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseException(
                f"Error creating {self.model.__name__}: {str(e)}"
            ) from e

    async def update_by_conditions(
        self,
        session: AsyncSession,
        conditions: list[SQLColumnExpression],
        updates: dict,
        commit_self: bool = True,
    ) -> int:
        """
        Asynchronously updates records that match the given conditions.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use for the update operation.
            conditions (list[SQLColumnExpression]): SQLAlchemy expressions combined with AND.
            updates (dict): Fields and their new values.
            commit_self (bool, optional): If True, commits; otherwise only flushes. Defaults to True.

        Returns:
            int: The number of records updated.

        Raises:
            DatabaseException: If an error occurs while updating the records or committing.
        """
        try:
            stmt: Update = (
                sa_update(self.model)
                .where(and_(*conditions))
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return result.rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def update_one_by_conditions(
        self,
        session: AsyncSession,
        conditions: list[SQLColumnExpression],
        updates: dict,
        commit_self: bool = True,
    ) -> T | None:
        """
        Asynchronously updates the record matching the conditions and returns it.

        Returns:
            T | None: The updated instance, or None if nothing matched.

        Raises:
            DatabaseException: If an error occurs while updating the record or committing.
        """
        try:
            stmt: Update = (
                sa_update(self.model)
                .where(and_(*conditions))
                .values(**updates)
                .returning(self.model)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            obj = result.scalars().first()

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return obj
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def delete_one_by_conditions(
        self,
        session: AsyncSession,
        conditions: list[SQLColumnExpression],
        commit_self: bool = True,
    ) -> T | None:
        """
        Asynchronously deletes the record matching the conditions.

        Returns:
            T | None: The deleted instance as it was before deletion, or None if nothing matched.

        Raises:
            DatabaseException: If an error occurs while deleting the record or committing.
        """
        try:
            obj = await self.get_one_by_conditions(session, conditions)
            if obj is None:
                return None

            stmt: Delete = sa_delete(self.model).where(
                self.model.id == obj.id  # type: ignore[attr-defined]
            )
            await session.execute(stmt)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return obj
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error deleting {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e
