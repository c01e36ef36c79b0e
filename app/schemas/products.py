from pydantic import BaseModel


class DataPlanOut(BaseModel):
    id: str
    name: str
    price: int
    validity: str
    category: str
    providerId: str


class DataPlansOut(BaseModel):
    success: bool
    plans: list[DataPlanOut]


class HotDealOut(BaseModel):
    id: str
    provider: str
    plan: str
    price: str
    originalPrice: str
    validity: str
    color: str
    category: str


class HotDealsOut(BaseModel):
    success: bool
    deals: list[HotDealOut]
