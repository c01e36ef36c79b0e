from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.products import DataPlansOut, HotDealsOut
from app.services.data_plans import get_data_plans
from app.services.deals import get_hot_deals

router = APIRouter()


@router.get("/data-plans", response_model=DataPlansOut)
def list_data_plans(provider: str | None = Query(default=None), db: Session = Depends(get_db)):
    return get_data_plans(db, provider)


@router.get("/hot-deals", response_model=HotDealsOut)
def list_hot_deals():
    return get_hot_deals()
