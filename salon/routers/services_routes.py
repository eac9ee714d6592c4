# salon/routers/services_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salon.changes import ChangeFeed
from salon.db import get_session
from salon.deps import get_feed, require_admin
from salon.models import Service, TimeSlot
from salon.schemas import ServiceCreate, ServicePublic, ServiceUpdate

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


@router.get("", response_model=List[ServicePublic])
def list_services(session: Session = Depends(get_session)):
    return session.exec(select(Service).order_by(Service.name)).all()


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    payload: ServiceCreate,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    service = Service(name=payload.name.strip(), description=payload.description, price=payload.price)
    session.add(service)
    session.commit()
    session.refresh(service)
    feed.publish("service", "insert", service.id)
    return service


@router.put("/{service_id}", response_model=ServicePublic)
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    service = session.get(Service, service_id)
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(service, field, value)

    session.add(service)
    session.commit()
    session.refresh(service)
    feed.publish("service", "update", service.id)
    return service


@router.delete("/{service_id}", status_code=204)
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
    feed: ChangeFeed = Depends(get_feed),
):
    service = session.get(Service, service_id)
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")

    # slots (and through them appointments) still point at it
    has_slots = session.exec(select(TimeSlot.id).where(TimeSlot.service_id == service_id)).first()
    if has_slots is not None:
        raise HTTPException(status_code=409, detail="Service still has time slots")

    session.delete(service)
    session.commit()
    feed.publish("service", "delete", service_id)
    return None
