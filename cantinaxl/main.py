# cantinaxl/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cantinaxl.routes import payments
from cantinaxl.core.config import settings
from cantinaxl.core.database import create_tables
from dotenv import load_dotenv

load_dotenv()
app = FastAPI(
    title="CantinaXL Payments API",
    description="TropiPay payment links, payment webhooks and Brevo purchase statistics",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_event():
    settings.validate_for_startup()
    await create_tables()

app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])

@app.get("/health")
async def health():
    return {"status": "ok"}
