"""
Resume Analyzer Service - Main FastAPI Application
Port: 8000 (PORT env)

Endpoints:
  POST   /api/analyze                          → LLM match assessment (+ best-effort session save)
  POST   /api/analyze/save-user                → upsert signed-in user
  GET    /api/analyze/get-user/{id}            → user row / 404
  GET    /api/analyze/recent-analyses/{userId} → newest sessions with job description
  DELETE /api/analyze/analysis/{id}            → delete session
  GET    /api/analyze/check-admin/{id}         → admin flag
  POST   /api/analyze/feedback                 → submit feedback
  GET    /api/analyze/feedback/{adminId}       → all feedback (admin)
  GET    /api/analyze/users/{adminId}          → all users (admin)
  POST   /api/resumes, GET /api/resumes/latest/{userId},
  PATCH  /api/resumes/{id}, DELETE /api/resumes/{id}, POST /api/job-descriptions
  GET    /health
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .analyzer import ResumeAnalyzer
from .config import Settings, load_settings
from .routes import get_settings, health_payload, resources_router, router
from .store import create_store

# Load environment variables from backend root
backend_root = Path(__file__).parent.parent
env_path = backend_root / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("resume_analyzer")

settings = load_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: Settings → Store client → LLM analyzer
    Shutdown: nothing to release (clients are per-request or stateless)
    """
    app.state.settings = settings
    for key, state in settings.status().items():
        logger.info(f"{key}: {state}")

    app.state.store = create_store(settings)

    app.state.analyzer = ResumeAnalyzer(settings)
    if not app.state.analyzer.configured:
        logger.warning("⚠️ OPENROUTER_API_KEY not set, /api/analyze will return 500")

    logger.info(f"🚀 Resume analyzer ready on port {settings.port}")

    yield

    logger.info("Resume analyzer shut down cleanly")


app = FastAPI(
    title="Resume Analyzer API",
    description="Compares resumes to job descriptions via an LLM and stores sessions in Supabase",
    version="1.0.0",
    lifespan=lifespan,
)

_CORS_ALLOW_ALL = settings.allowed_origins == ("*",)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=not _CORS_ALLOW_ALL,  # credentials + '*' is rejected by browsers
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request logging ───────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = datetime.now()
    path = request.url.path
    method = request.method
    try:
        response = await call_next(request)
        dt = (datetime.now() - start).total_seconds()
        logger.info(f"{method} {path} -> {response.status_code} ({dt:.2f}s)")
        return response
    except Exception as e:
        logger.error(f"{method} {path} ERROR: {e}")
        raise


app.include_router(router)
app.include_router(resources_router)


@app.get("/health")
async def health_check(request: Request, app_settings: Settings = Depends(get_settings)):
    """Health check endpoint"""
    return health_payload(request, app_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
