"""System configuration API endpoints (upload window, excluded income periods)."""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from src.api.payment import PeriodModel
from src.models.user import User
from src.services import get_db
from src.services.auth_service import get_authenticated_user, require_admin
from src.services.system_config_service import SystemConfigService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/system-config", tags=["system-config"])


class UploadWindowModel(BaseModel):
    enabled: bool
    start_day: int = Field(alias="startDay")
    end_day: int = Field(alias="endDay")

    model_config = ConfigDict(populate_by_name=True)


class ExcludedPeriodsModel(BaseModel):
    periods: list[PeriodModel]


@router.get("/upload-window", response_model=UploadWindowModel, response_model_by_alias=True)
def get_upload_window(
    user: User = Depends(get_authenticated_user), db: Session = Depends(get_db)
):
    config = SystemConfigService(db).get_cached_upload_window_config()
    return UploadWindowModel(enabled=config.enabled, start_day=config.start_day, end_day=config.end_day)


@router.post("/upload-window", response_model=UploadWindowModel, response_model_by_alias=True)
def set_upload_window(
    body: UploadWindowModel,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    config = SystemConfigService(db).set_upload_window_config(
        body.enabled, body.start_day, body.end_day, admin.id
    )
    return UploadWindowModel(enabled=config.enabled, start_day=config.start_day, end_day=config.end_day)


@router.get("/excluded-income-periods", response_model=ExcludedPeriodsModel)
def get_excluded_income_periods(
    admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    periods = sorted(SystemConfigService(db).get_excluded_income_periods())
    return {"periods": [{"year": p.year, "month": p.month} for p in periods]}


@router.post("/excluded-income-periods", response_model=ExcludedPeriodsModel)
def set_excluded_income_periods(
    body: ExcludedPeriodsModel,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    stored = SystemConfigService(db).set_excluded_income_periods(
        [p.model_dump() for p in body.periods], admin.id
    )
    return {"periods": [{"year": p.year, "month": p.month} for p in stored]}
