# cantinaxl/models/payment.py
from pydantic import BaseModel, Field
from typing import Optional, Union
from datetime import datetime

class PaymentClient(BaseModel):
    name: Optional[str] = None
    lastName: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    countryId: int = 1

class PaymentLinkRequest(BaseModel):
    reference: Optional[str] = None
    concept: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    urlSuccess: Optional[str] = None
    urlFailed: Optional[str] = None
    urlNotification: Optional[str] = None
    client: Optional[PaymentClient] = None
    packageId: Optional[str] = None
    packageQuantity: int = 1

class PaymentLinkResponse(BaseModel):
    success: bool
    shortUrl: str
    gatewayHash: str
    paymentLinkId: Optional[str] = None
    reference: str

class CardPaymentRequest(BaseModel):
    cardNumber: Optional[str] = None
    expiryDate: Optional[str] = None
    cvv: Optional[str] = None
    amount: Optional[float] = None

class CardPaymentResponse(BaseModel):
    success: bool
    transactionId: str
    amount: float
    message: str

class WebhookData(BaseModel):
    state: int
    reference: str
    originalCurrencyAmount: Optional[Union[int, str]] = None
    bankOrderCode: Optional[Union[str, int]] = None
    signaturev2: Optional[str] = None
    signaturev3: Optional[str] = None
    currency: Optional[str] = None
    amount: Optional[int] = None
    concept: Optional[str] = None
    description: Optional[str] = None
    createdAt: Optional[str] = None
    failureReason: Optional[str] = None

class WebhookPayload(BaseModel):
    status: str = Field(..., pattern="^(success|failed)$")
    data: WebhookData

class WebhookAck(BaseModel):
    success: bool
    reference: str
    status: str
    duplicate: bool = False

class PaymentStatusResponse(BaseModel):
    reference: str
    status: str
    amount: int
    currency: str
    gateway_transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    short_url: Optional[str] = None
    last_updated: Optional[datetime] = None
