from pydantic import BaseModel, Field
from typing import Optional


class PurchaseDetails(BaseModel):
    phone: Optional[str] = Field(default=None, max_length=20)
    # Meter number for electricity; the app also sends the smartcard number here for TV.
    meter: Optional[str] = Field(default=None, max_length=32)
    smartcard: Optional[str] = Field(default=None, max_length=32)
    network: Optional[str] = Field(default=None, max_length=64)
    product_id: Optional[str] = Field(default=None, alias="productId", max_length=64)
    meter_type: Optional[str] = Field(default=None, alias="meterType", max_length=16)
    subscription_type: Optional[str] = Field(default=None, alias="subscriptionType", max_length=16)

    class Config:
        allow_population_by_field_name = True


class InitPaymentRequest(BaseModel):
    # Required fields are checked by the payments service so that a missing
    # field maps to "invalid-argument" rather than a schema error.
    category: Optional[str] = None
    amount: Optional[int] = None
    details: Optional[PurchaseDetails] = None
    provider: Optional[str] = Field(default=None, max_length=64)
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    callback_url: Optional[str] = Field(default=None, alias="callbackUrl")

    class Config:
        allow_population_by_field_name = True


class TxRefRequest(BaseModel):
    tx_ref: Optional[str] = Field(default=None, alias="txRef")

    class Config:
        allow_population_by_field_name = True


class InitPaymentOut(BaseModel):
    success: bool
    txRef: str
    checkoutUrl: str
    accessCode: str
    isWebView: bool = True


class PaymentStatusOut(BaseModel):
    success: bool
    status: str


class MockPaymentOut(BaseModel):
    success: bool
    message: str
