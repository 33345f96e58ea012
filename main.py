"""
Design-to-code web backend
Projects, subscriptions (Stripe) and message usage
"""

from pathlib import Path
import logging
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from backend.utils.responses import error_response
from routers.billing_router import billing_router
from routers.projects_router import router as projects_router
from routers.usage_router import usage_router
from database import init_db
from config.settings import settings, IS_PRODUCTION

# All application logs go to ./logs/app.log and stderr
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Design-to-code backend")

# Keys the billing and naming features need; missing ones only degrade those features
REQUIRED_ENV_KEYS = {
    "JWT_SECRET_KEY": lambda: settings.jwt_secret_key,
    "STRIPE_SECRET_KEY": lambda: settings.stripe_secret_key,
    "OPENAI_API_KEY": lambda: settings.openai_api_key,
}


class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    """Turns anything a route lets escape into the 500 error envelope."""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Uncaught exception on {request.method} {request.url.path}: {e}\n{traceback.format_exc()}"
            )
            return error_response("internal_error", status=500, message="Internal Server Error")


app.add_middleware(UncaughtExceptionMiddleware)

# CORS last so it wraps the error middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def check_env_keys_on_startup():
    """Warn about missing keys on startup (non-fatal)"""
    missing = [key for key, read in REQUIRED_ENV_KEYS.items() if not read()]
    if missing:
        logger.warning(f"Startup check: missing environment variables: {', '.join(missing)}")
    else:
        logger.info("Startup check: billing, naming and auth keys are set")


@app.on_event("startup")
async def initialize_database():
    """Create all tables that do not exist yet."""
    try:
        await init_db()
        logger.info(f"Database ready (production={IS_PRODUCTION})")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


app.include_router(projects_router)
app.include_router(billing_router)
app.include_router(usage_router)


@app.get("/api/health")
async def health():
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
