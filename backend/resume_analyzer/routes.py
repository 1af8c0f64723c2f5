"""
HTTP handlers for analysis, user provisioning, feedback and resume storage.

Every handler validates its own required fields (400), maps store misses
to 404/403, and converts store and model failures into a logged 500 with a
generic message.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from .analyzer import LLMError, ResumeAnalyzer
from .config import Settings, load_settings
from .extraction import ExtractionError, UnsupportedFileType, extract_text, title_from_filename
from .models import (
    AnalysisResult,
    AnalyzeRequest,
    FeedbackRequest,
    JobDescriptionRequest,
    ResumeUpdateRequest,
    SaveUserRequest,
)
from .store import StoreError, SupabaseStore

logger = logging.getLogger(__name__)


# ── Dependencies ──────────────────────────────────────────────────

def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else load_settings()


def get_optional_store(request: Request) -> Optional[SupabaseStore]:
    return getattr(request.app.state, "store", None)


def get_store(store: Optional[SupabaseStore] = Depends(get_optional_store)) -> SupabaseStore:
    if store is None:
        raise HTTPException(status_code=503, detail="Supabase not configured")
    return store


def get_analyzer(request: Request, settings: Settings = Depends(get_settings)) -> ResumeAnalyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    return analyzer if analyzer is not None else ResumeAnalyzer(settings)


def _require_admin(store: SupabaseStore, admin_id: str) -> None:
    try:
        is_admin = store.is_admin(admin_id)
    except StoreError:
        is_admin = None
    if not is_admin:
        raise HTTPException(status_code=403, detail="Unauthorized. Admin access required.")


def health_payload(request: Request, settings: Settings) -> Dict[str, Any]:
    analyzer = getattr(request.app.state, "analyzer", None)
    return {
        "status": "Server is running",
        "service": "resume-analyzer",
        "timestamp": datetime.now().isoformat(),
        "port": settings.port,
        "services": {
            "openrouter": bool(analyzer and analyzer.configured),
            "supabase": getattr(request.app.state, "store", None) is not None,
        },
    }


# ── Router ─────────────────────────────────────────────────────────
router = APIRouter(prefix="/api/analyze", tags=["analyze"])


def _save_session(store: Optional[SupabaseStore], body: AnalyzeRequest, analysis: AnalysisResult) -> None:
    """Best-effort persistence; never fails the analysis request."""
    if not (body.resume_id and body.job_description_id and body.user_id):
        return
    if store is None:
        logger.warning("⚠️ Store not configured, analysis session not saved")
        return
    try:
        logger.info("Saving analysis to TailoringSession...")
        session = store.create_session(
            user_id=body.user_id,
            resume_id=body.resume_id,
            job_id=body.job_description_id,
            analysis=analysis,
        )
        logger.info(f"✅ Analysis session saved: {session.get('id')}")
    except StoreError as e:
        logger.warning(f"⚠️ Failed to save analysis session: {e}")


@router.post("")
async def analyze_resume(
    body: AnalyzeRequest,
    analyzer: ResumeAnalyzer = Depends(get_analyzer),
    store: Optional[SupabaseStore] = Depends(get_optional_store),
):
    """Compare a resume against a job description via the LLM."""
    job_description = (body.job_description or "").strip()
    resume = (body.resume or "").strip()
    if not job_description or not resume:
        raise HTTPException(status_code=400, detail="jobDescription and resume are required.")

    try:
        outcome = await analyzer.analyze(job_description, resume)
    except LLMError as e:
        logger.error(f"❌ Analysis error: {e}")
        raise HTTPException(status_code=500, detail="Failed to analyze resume.")

    if outcome.degraded:
        logger.warning("⚠️ Returning fallback analysis (model reply was not valid JSON)")
    logger.info(f"✅ Analysis complete: {outcome.result.skills_match_percentage}% match")

    await run_in_threadpool(_save_session, store, body, outcome.result)

    return {
        "success": True,
        "analysis": outcome.result.to_wire(),
        "degraded": outcome.degraded,
    }


@router.post("/save-user")
def save_user(body: SaveUserRequest, store: SupabaseStore = Depends(get_store)):
    """Upsert the signed-in identity into the users table."""
    if not body.id or not body.email:
        logger.error(f"Missing required fields: id={bool(body.id)} email={bool(body.email)}")
        raise HTTPException(status_code=400, detail="Missing required fields: id and email")

    try:
        user = store.upsert_user(body.id, body.email, body.name, body.avatar_url)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"✅ User upsert successful: {body.id}")
    return {"success": True, "user": user}


@router.get("/get-user/{user_id}")
def get_user(user_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        user = store.get_user(user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if user is None:
        logger.info(f"User not found in database: {user_id}")
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/health")
async def analyze_health(request: Request, settings: Settings = Depends(get_settings)):
    return health_payload(request, settings)


@router.get("/recent-analyses/{user_id}")
def recent_analyses(
    user_id: str,
    store: SupabaseStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Newest analyses for a user, each with its job description."""
    try:
        analyses = store.recent_sessions(user_id, limit=settings.recent_analyses_limit)
    except StoreError:
        raise HTTPException(status_code=500, detail="Internal server error")
    logger.info(f"Recent analyses fetched: {len(analyses)}")
    return {"success": True, "analyses": analyses}


@router.delete("/analysis/{analysis_id}")
def delete_analysis(analysis_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        store.delete_session(analysis_id)
    except StoreError:
        raise HTTPException(status_code=500, detail="Internal server error")
    logger.info(f"Analysis deleted successfully: {analysis_id}")
    return {"success": True}


@router.get("/check-admin/{user_id}")
def check_admin(user_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        is_admin = store.is_admin(user_id)
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to check admin status")
    if is_admin is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "isAdmin": is_admin}


@router.post("/feedback")
def submit_feedback(body: FeedbackRequest, store: SupabaseStore = Depends(get_store)):
    message = (body.message or "").strip()
    if not body.user_id or not message:
        raise HTTPException(status_code=400, detail="userId and message are required")
    try:
        feedback = store.create_feedback(body.user_id, message)
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to submit feedback")
    return {"success": True, "feedback": feedback}


@router.get("/feedback/{admin_id}")
def list_feedback(admin_id: str, store: SupabaseStore = Depends(get_store)):
    """Admin-only: all feedback with the submitting user."""
    _require_admin(store, admin_id)
    try:
        feedback = store.list_feedback()
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to fetch feedback")
    return {"success": True, "feedback": feedback}


@router.get("/users/{admin_id}")
def list_users(admin_id: str, store: SupabaseStore = Depends(get_store)):
    """Admin-only: every provisioned user, newest first."""
    _require_admin(store, admin_id)
    try:
        users = store.list_users()
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to fetch users")
    return {"success": True, "users": users}


# ── Resumes & job descriptions ────────────────────────────────────
resources_router = APIRouter(prefix="/api", tags=["resumes"])


@resources_router.post("/resumes")
async def upload_resume(
    user_id: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    store: SupabaseStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Extract text from an uploaded resume and store it as the user's newest resume."""
    if not user_id or file is None or not file.filename:
        raise HTTPException(status_code=400, detail="user_id and file are required")

    file_content = await file.read()
    if len(file_content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File size must be less than {settings.max_upload_bytes // (1024 * 1024)}MB",
        )

    logger.info(f"📤 Processing resume upload: {file.filename}")
    try:
        text = await run_in_threadpool(extract_text, file.filename, file.content_type, file_content)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExtractionError:
        raise HTTPException(
            status_code=400,
            detail="Failed to extract text from file. Please try a different format.",
        )

    text = text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Could not extract text from the uploaded file")

    try:
        resume = await run_in_threadpool(
            store.create_resume, user_id, title_from_filename(file.filename), text
        )
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to save resume")
    logger.info(f"✅ Resume saved: {resume.get('id')} ({len(text)} chars)")
    return {"success": True, "resume": resume}


@resources_router.get("/resumes/latest/{user_id}")
def latest_resume(user_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        resume = store.latest_resume(user_id)
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to load resume")
    if resume is None:
        raise HTTPException(status_code=404, detail="No resume found. Please upload a resume first.")
    return {"success": True, "resume": resume}


@resources_router.patch("/resumes/{resume_id}")
def update_resume(
    resume_id: str,
    body: ResumeUpdateRequest,
    store: SupabaseStore = Depends(get_store),
):
    fields = {k: v.strip() for k, v in body.model_dump(exclude_none=True).items() if v.strip()}
    if not fields:
        raise HTTPException(status_code=400, detail="title or content_raw is required")
    try:
        resume = store.update_resume(resume_id, fields)
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to update resume")
    if resume is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    return {"success": True, "resume": resume}


@resources_router.delete("/resumes/{resume_id}")
def delete_resume(resume_id: str, store: SupabaseStore = Depends(get_store)):
    try:
        store.delete_resume(resume_id)
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to delete resume")
    return {"success": True}


@resources_router.post("/job-descriptions")
def create_job_description(body: JobDescriptionRequest, store: SupabaseStore = Depends(get_store)):
    content = (body.content or "").strip()
    if not body.user_id or not content:
        raise HTTPException(status_code=400, detail="userId and content are required")
    try:
        job = store.create_job_description(body.user_id, content, title=body.title, source=body.source)
    except StoreError:
        raise HTTPException(status_code=500, detail="Failed to save job description")
    return {"success": True, "jobDescription": job}
