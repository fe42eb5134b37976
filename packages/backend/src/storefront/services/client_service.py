"""Client service — CRUD over the clients table.

Learn: Same layering as the auth workflow: routes handle HTTP,
this service handles the database. Writes are flushed here and
committed by the route.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Client


class ClientNotFoundError(Exception):
    pass


class ClientService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_clients(self) -> list[Client]:
        result = await self.db.execute(select(Client).order_by(Client.id))
        return list(result.scalars().all())

    async def get_client(self, client_id: int) -> Optional[Client]:
        return await self.db.get(Client, client_id)

    async def create_client(self, **fields) -> Client:
        client = Client(**fields)
        self.db.add(client)
        await self.db.flush()
        return client

    async def update_client(self, client_id: int, **fields) -> Client:
        client = await self.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        for key, value in fields.items():
            setattr(client, key, value)
        await self.db.flush()
        return client

    async def delete_client(self, client_id: int) -> None:
        client = await self.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        await self.db.delete(client)
        await self.db.flush()
