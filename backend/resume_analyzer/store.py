"""
Resume Analyzer Store
======================
All persistence goes through the managed Supabase project:

- users               → provisioning, admin flag
- resumes             → uploaded resume text, newest per user is "current"
- job_descriptions    → one row per analysis request
- tailoring_sessions  → one row per successful analysis
- feedback            → free-text feedback, admin-readable

No invariants are enforced here beyond what the tables declare; last
write wins.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from .config import Settings
from .models import AnalysisResult

logger = logging.getLogger(__name__)

USERS = "users"
RESUMES = "resumes"
JOB_DESCRIPTIONS = "job_descriptions"
SESSIONS = "tailoring_sessions"
FEEDBACK = "feedback"

RECENT_SESSION_COLUMNS = """
    id,
    created_at,
    matched_skills,
    feedback_notes,
    job_descriptions!inner(
        id,
        title,
        content_raw
    )
"""

FEEDBACK_COLUMNS = """
    id,
    message,
    created_at,
    users!inner(id, email, name)
"""


class StoreError(Exception):
    """A request to the managed store failed."""


class SupabaseStore:
    """
    Table-level operations against the managed store.

    Every method either returns plain row dicts or raises StoreError.
    """

    def __init__(self, client: Client):
        self.client = client

    def _execute(self, query: Any, action: str) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            logger.error(f"❌ Store error while trying to {action}: {e}")
            raise StoreError(f"Failed to {action}: {e}") from e
        return response.data or []

    def _insert_one(self, query: Any, action: str) -> Dict[str, Any]:
        rows = self._execute(query, action)
        if not rows:
            raise StoreError(f"Failed to {action}: no row returned")
        return rows[0]

    # ── Users ─────────────────────────────────────────────────────

    def upsert_user(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._insert_one(
            self.client.table(USERS).upsert(
                {"id": user_id, "email": email, "name": name, "avatar_url": avatar_url},
                on_conflict="id",
            ),
            "upsert user",
        )

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table(USERS).select("*").eq("id", user_id).limit(1),
            "fetch user",
        )
        return rows[0] if rows else None

    def list_users(self) -> List[Dict[str, Any]]:
        return self._execute(
            self.client.table(USERS).select("*").order("created_at", desc=True),
            "list users",
        )

    def is_admin(self, user_id: str) -> Optional[bool]:
        """True/False for a known user, None when the user does not exist."""
        rows = self._execute(
            self.client.table(USERS).select("isAdmin").eq("id", user_id).limit(1),
            "check admin status",
        )
        if not rows:
            return None
        return rows[0].get("isAdmin") is True

    # ── Resumes ───────────────────────────────────────────────────

    def create_resume(
        self,
        user_id: str,
        title: str,
        content_raw: str,
        content_json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return self._insert_one(
            self.client.table(RESUMES).insert(
                {
                    "user_id": user_id,
                    "title": title,
                    "content_raw": content_raw,
                    "content_json": content_json,
                }
            ),
            "save resume",
        )

    def latest_resume(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table(RESUMES)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(1),
            "fetch latest resume",
        )
        return rows[0] if rows else None

    def update_resume(self, resume_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table(RESUMES).update(fields).eq("id", resume_id),
            "update resume",
        )
        return rows[0] if rows else None

    def delete_resume(self, resume_id: str) -> None:
        self._execute(self.client.table(RESUMES).delete().eq("id", resume_id), "delete resume")

    # ── Job descriptions ──────────────────────────────────────────

    def create_job_description(
        self,
        user_id: str,
        content_raw: str,
        title: str = "Job Analysis",
        source: str = "manual_paste",
    ) -> Dict[str, Any]:
        return self._insert_one(
            self.client.table(JOB_DESCRIPTIONS).insert(
                {
                    "user_id": user_id,
                    "title": title,
                    "content_raw": content_raw,
                    "source": source,
                }
            ),
            "save job description",
        )

    # ── Tailoring sessions ────────────────────────────────────────

    def create_session(
        self,
        user_id: str,
        resume_id: str,
        job_id: str,
        analysis: AnalysisResult,
    ) -> Dict[str, Any]:
        return self._insert_one(
            self.client.table(SESSIONS).insert(
                {
                    "user_id": user_id,
                    "resume_id": resume_id,
                    "job_id": job_id,
                    "matched_skills": analysis.skills_summary(),
                    "feedback_notes": json.dumps(analysis.to_wire()),
                    "tailored_resume": analysis.overall_feedback,
                }
            ),
            "save analysis session",
        )

    def recent_sessions(self, user_id: str, limit: int = 3) -> List[Dict[str, Any]]:
        return self._execute(
            self.client.table(SESSIONS)
            .select(RECENT_SESSION_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit),
            "fetch recent analyses",
        )

    def delete_session(self, session_id: str) -> None:
        self._execute(self.client.table(SESSIONS).delete().eq("id", session_id), "delete analysis")

    # ── Feedback ──────────────────────────────────────────────────

    def create_feedback(self, user_id: str, message: str) -> Dict[str, Any]:
        return self._insert_one(
            self.client.table(FEEDBACK).insert({"user_id": user_id, "message": message}),
            "submit feedback",
        )

    def list_feedback(self) -> List[Dict[str, Any]]:
        return self._execute(
            self.client.table(FEEDBACK).select(FEEDBACK_COLUMNS).order("created_at", desc=True),
            "fetch feedback",
        )


def create_store(settings: Settings) -> Optional[SupabaseStore]:
    """Build the store from settings, or None when Supabase is not configured."""
    if not settings.supabase_configured:
        logger.warning("⚠️ SUPABASE_URL / SUPABASE_SERVICE_KEY not set, store disabled")
        return None
    try:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        logger.error(f"❌ Failed to initialize Supabase client: {e}")
        return None
    logger.info("✅ Supabase client initialized with service key")
    return SupabaseStore(client)
