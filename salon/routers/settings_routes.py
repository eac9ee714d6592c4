# salon/routers/settings_routes.py

from typing import Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from salon.db import get_session
from salon.deps import require_admin
from salon.models import SiteSetting
from salon.schemas import SiteSettingUpdate

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
)


@router.get("", response_model=Dict[str, str])
def get_site_settings(session: Session = Depends(get_session)):
    rows = session.exec(select(SiteSetting)).all()
    return {row.key: row.value for row in rows}


@router.put("/{key}", response_model=Dict[str, str])
def put_site_setting(
    key: str,
    payload: SiteSettingUpdate,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin),
):
    # DB upsert: one row per key
    setting = session.get(SiteSetting, key)
    if setting is None:
        setting = SiteSetting(key=key, value=payload.value)
    else:
        setting.value = payload.value

    session.add(setting)
    session.commit()
    session.refresh(setting)
    return {setting.key: setting.value}
