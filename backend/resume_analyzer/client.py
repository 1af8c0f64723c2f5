"""
Async HTTP client for the resume analyzer API.

Mirrors the calls the web client makes and implements user provisioning:
upsert the signed-in identity, confirm it exists, and sign the user out
again when either step fails.
"""

import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
SETUP_FAILURE_MESSAGE = "We couldn't finish setting up your account. Please sign in again."


class Identity(BaseModel):
    """An authenticated identity as handed over by the identity provider."""
    id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_auth_user(cls, user: Dict[str, Any]) -> "Identity":
        metadata = user.get("user_metadata") or {}
        return cls(
            id=user["id"],
            email=user["email"],
            name=metadata.get("full_name") or metadata.get("name"),
            avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
        )


class ProvisioningResult(BaseModel):
    ok: bool
    user: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class AnalyzerClient:
    """Thin wrapper over httpx.AsyncClient; non-2xx responses raise httpx.HTTPStatusError."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 90.0,
    ):
        self.base_url = base_url or os.getenv("API_BASE_URL", DEFAULT_API_URL)
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "AnalyzerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._http.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json()

    # ── Users ─────────────────────────────────────────────────────

    async def save_user(self, identity: Identity) -> Dict[str, Any]:
        result = await self._request("POST", "/api/analyze/save-user", json=identity.model_dump())
        return result["user"]

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """The user row, or None when the API answers 404."""
        response = await self._http.get(f"/api/analyze/get-user/{user_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def check_admin(self, user_id: str) -> bool:
        try:
            result = await self._request("GET", f"/api/analyze/check-admin/{user_id}")
        except httpx.HTTPError as e:
            logger.error(f"Error checking admin status: {e}")
            return False
        return bool(result.get("success") and result.get("isAdmin"))

    async def list_users(self, admin_id: str) -> List[Dict[str, Any]]:
        result = await self._request("GET", f"/api/analyze/users/{admin_id}")
        return result.get("users", [])

    # ── Analysis ──────────────────────────────────────────────────

    async def analyze(
        self,
        job_description: str,
        resume: str,
        resume_id: Optional[str] = None,
        job_description_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/api/analyze",
            json={
                "jobDescription": job_description,
                "resume": resume,
                "resumeId": resume_id,
                "jobDescriptionId": job_description_id,
                "userId": user_id,
            },
        )

    async def recent_analyses(self, user_id: str) -> List[Dict[str, Any]]:
        result = await self._request("GET", f"/api/analyze/recent-analyses/{user_id}")
        return result.get("analyses", [])

    async def delete_analysis(self, analysis_id: str) -> bool:
        result = await self._request("DELETE", f"/api/analyze/analysis/{analysis_id}")
        return bool(result.get("success"))

    # ── Resumes & job descriptions ────────────────────────────────

    async def upload_resume(
        self,
        user_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        result = await self._request(
            "POST",
            "/api/resumes",
            data={"user_id": user_id},
            files={"file": (filename, content, content_type)},
        )
        return result["resume"]

    async def latest_resume(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = await self._http.get(f"/api/resumes/latest/{user_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()["resume"]

    async def create_job_description(self, user_id: str, content: str) -> Dict[str, Any]:
        result = await self._request(
            "POST",
            "/api/job-descriptions",
            json={"userId": user_id, "content": content},
        )
        return result["jobDescription"]

    async def analyze_latest_resume(self, user_id: str, job_description: str) -> Dict[str, Any]:
        """Full flow: newest resume + new job description row → analysis."""
        resume = await self.latest_resume(user_id)
        if resume is None:
            raise LookupError("No resume found. Please upload a resume first.")
        job = await self.create_job_description(user_id, job_description)
        return await self.analyze(
            job_description,
            resume["content_raw"],
            resume_id=resume["id"],
            job_description_id=job["id"],
            user_id=user_id,
        )

    # ── Feedback ──────────────────────────────────────────────────

    async def submit_feedback(self, user_id: str, message: str) -> bool:
        result = await self._request(
            "POST",
            "/api/analyze/feedback",
            json={"userId": user_id, "message": message},
        )
        return bool(result.get("success"))

    async def all_feedback(self, admin_id: str) -> List[Dict[str, Any]]:
        result = await self._request("GET", f"/api/analyze/feedback/{admin_id}")
        return result.get("feedback", []) if result.get("success") else []


async def provision_user(
    client: AnalyzerClient,
    identity: Identity,
    sign_out: Callable[[], Awaitable[None]],
) -> ProvisioningResult:
    """
    Make sure the signed-in identity has a users row.

    Upsert by id, then confirm the row exists. If either step fails the
    caller's session is rolled back through sign_out() and a generic
    setup-failure message is returned.
    """
    try:
        await client.save_user(identity)
        user = await client.get_user(identity.id)
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error(f"❌ User setup failed for {identity.id}: {e}")
        user = None

    if user is None:
        logger.warning(f"⚠️ Signing out {identity.id}: user row could not be confirmed")
        try:
            await sign_out()
        except Exception as e:
            logger.error(f"Error during logout: {e}")
        return ProvisioningResult(ok=False, message=SETUP_FAILURE_MESSAGE)

    logger.info(f"✅ User provisioned: {identity.id}")
    return ProvisioningResult(ok=True, user=user)
