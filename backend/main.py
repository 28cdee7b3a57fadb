import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.routes.checkout import router as checkout_router
from backend.app.routes.webhooks import router as webhooks_router
from backend.app.services.reconciliation import close_http_client

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:8080").split(",") if origin.strip()]

app = FastAPI(title="OneStop Booking API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(checkout_router)
app.include_router(webhooks_router)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


@app.on_event("shutdown")
async def close_notification_client() -> None:
    await close_http_client()


# run: uvicorn backend.main:app --host 127.0.0.1 --port 8000 --reload
