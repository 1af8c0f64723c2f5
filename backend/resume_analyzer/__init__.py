"""
Resume Analyzer Service Package
================================
Resume ↔ job-description matching backed by an LLM and a managed Supabase store.

Architecture:
- config.py      → Settings with environment variable overrides
- models.py      → Pydantic models (API contracts, analysis payload)
- prompts.py     → Fixed analysis prompt template
- analyzer.py    → OpenRouter completion call + JSON parse with fallback
- store.py       → Supabase table operations
- extraction.py  → PDF / DOCX / text resume extraction
- routes.py      → FastAPI routers (HTTP layer)
- main.py        → FastAPI application
- client.py      → Async API client + user provisioning
"""

from .analyzer import LLMError, ResumeAnalyzer, fallback_analysis, parse_analysis
from .config import Settings, load_settings
from .models import AnalysisOutcome, AnalysisResult
from .store import StoreError, SupabaseStore, create_store

__all__ = [
    "Settings",
    "load_settings",
    "AnalysisOutcome",
    "AnalysisResult",
    "LLMError",
    "ResumeAnalyzer",
    "fallback_analysis",
    "parse_analysis",
    "StoreError",
    "SupabaseStore",
    "create_store",
]
