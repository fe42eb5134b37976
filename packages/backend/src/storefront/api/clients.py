"""Client API routes — plain CRUD over store clients.

Learn: The router is mounted with the bearer-token dependency in
api/__init__.py, so every route here requires a valid login token.
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.engine import get_db
from storefront.schemas.client import ClientCreate, ClientRead, ClientUpdate
from storefront.services.client_service import ClientNotFoundError, ClientService

router = APIRouter(prefix="/Clients")


def _svc(db: AsyncSession = Depends(get_db)) -> ClientService:
    return ClientService(db)


@router.get("", response_model=list[ClientRead])
async def list_clients(svc: ClientService = Depends(_svc)):
    return await svc.list_clients()


@router.get("/{client_id}", response_model=ClientRead)
async def get_client(client_id: int, svc: ClientService = Depends(_svc)):
    client = await svc.get_client(client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.post("", response_model=ClientRead, status_code=201)
async def create_client(body: ClientCreate, svc: ClientService = Depends(_svc)):
    client = await svc.create_client(**body.model_dump())
    await svc.db.commit()
    return client


@router.put("", status_code=204)
async def update_client(body: ClientUpdate, svc: ClientService = Depends(_svc)):
    fields = body.model_dump(exclude={"id"})
    try:
        await svc.update_client(body.id, **fields)
    except ClientNotFoundError:
        raise HTTPException(status_code=404, detail="Client not found")
    await svc.db.commit()
    return Response(status_code=204)


@router.delete("/{client_id}", status_code=204)
async def delete_client(client_id: int, svc: ClientService = Depends(_svc)):
    try:
        await svc.delete_client(client_id)
    except ClientNotFoundError:
        raise HTTPException(status_code=404, detail="Client not found")
    await svc.db.commit()
    return Response(status_code=204)
