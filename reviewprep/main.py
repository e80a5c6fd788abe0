"""FastAPI application entry point"""

from typing import Any, Dict, List, Optional
import logging

import httpx
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from reviewprep.config.database import SessionLocal, init_db
from reviewprep.config.settings import settings
from reviewprep.github.errors import GitHubError, RateLimitError
from reviewprep.jobs.review_prep import (
    TokenRejectedError,
    load_pull_requests,
    run_assessment,
    save_manual_pull_requests,
)
from reviewprep.orchestrator import AnalysisPipeline, StageUpdate
from reviewprep.stores.assessment_store import AssessmentStore
from reviewprep.stores.documents import DocumentCollection
from reviewprep.stores.local_cache import FileKeyValueStore
from reviewprep.stores.pr_cache import PR_DATA_COLLECTION, PRSnapshotCache
from reviewprep.stores.profile_store import ProfileStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Merged-PR ingestion and self-assessment preparation service",
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

assessment_store = AssessmentStore(session_factory=SessionLocal)
profile_store = ProfileStore(session_factory=SessionLocal)
pr_cache = PRSnapshotCache(
    FileKeyValueStore(settings.LOCAL_CACHE_DIR),
    DocumentCollection(SessionLocal, PR_DATA_COLLECTION),
)

# Latest stage per user for the in-flight analysis (in-memory, single process)
run_progress: Dict[str, Dict[str, Any]] = {}


class LoadPRsRequest(BaseModel):
    email: str
    force: bool = False


class ManualPRsRequest(BaseModel):
    email: str
    urls: List[str]


class AssessmentRequest(BaseModel):
    email: str
    level: Optional[str] = None


@app.on_event("startup")
async def on_startup():
    init_db()


@app.on_event("shutdown")
async def on_shutdown():
    await pr_cache.drain()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "load_prs": "POST /api/prs",
            "manual_prs": "POST /api/prs/manual",
            "run_assessment": "POST /api/assessments",
            "progress": "GET /api/assessments/{email}/progress",
            "assessment": "GET /api/assessments/{email}",
        }
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "reviewprep",
        "version": settings.APP_VERSION
    }


@app.post("/api/prs")
async def load_prs(payload: LoadPRsRequest, request: Request):
    """Load merged PRs for the user's review period, cache first"""
    profile = profile_store.load(payload.email)
    if profile is None:
        raise HTTPException(status_code=404, detail="No profile for this user")

    cipher = getattr(request.app.state, "token_cipher", None)
    if cipher is None:
        raise HTTPException(status_code=503, detail="Token cipher is not configured")

    try:
        result = await load_pull_requests(profile, cipher=cipher, cache=pr_cache, force_fetch=payload.force)
    except TokenRejectedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except RateLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except (GitHubError, httpx.HTTPError) as e:
        logger.error(f"PR fetch failed for {payload.email}: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"GitHub fetch failed: {e}")

    return {
        "source": result.source,
        "count": len(result.prs),
        "fetchedAt": result.fetched_at,
        "prs": [pr.to_dict() for pr in result.prs],
    }


@app.post("/api/prs/manual")
async def manual_prs(payload: ManualPRsRequest):
    """Store pasted PR URLs when the GitHub fetch is not an option"""
    try:
        result = await save_manual_pull_requests(payload.email, payload.urls, cache=pr_cache)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"source": result.source, "count": len(result.prs), "fetchedAt": result.fetched_at}


@app.post("/api/assessments", status_code=202)
async def start_assessment(payload: AssessmentRequest, background_tasks: BackgroundTasks):
    """Trigger the analysis pipeline in the background"""
    profile = profile_store.load(payload.email)
    level = payload.level or (profile.level if profile else None)
    if not level:
        raise HTTPException(status_code=400, detail="Engineering level is required")

    snapshot = None
    if profile is not None:
        snapshot = pr_cache.get_fresh(payload.email, profile.period_start, profile.period_end)
    if snapshot is None:
        # Manual entries are cached with an empty period
        snapshot = pr_cache.get_fresh(payload.email, "", "")
    if snapshot is None:
        raise HTTPException(status_code=409, detail="No fresh PR data; load PRs first")

    email = payload.email
    run_progress[email] = {"status": "running", "step": 0, "label": "Starting...", "streamedChars": 0}

    def on_stage_change(update: StageUpdate) -> None:
        progress = run_progress[email]
        if progress.get("step") != update.step or progress.get("label") != update.label:
            progress["streamedChars"] = 0
        progress["step"] = update.step
        progress["label"] = update.label
        if update.detail:
            progress["streamedChars"] += len(update.detail)

    async def run_pipeline():
        try:
            assessment = await run_assessment(
                snapshot.prs,
                level,
                email,
                pipeline=AnalysisPipeline(store=assessment_store),
                on_stage_change=on_stage_change,
            )
            run_progress[email] = {
                "status": "completed",
                "clusters": len(assessment.clusters),
                "generatedAt": assessment.generated_at,
            }
            logger.info(f"Assessment completed for {email}: {len(assessment.clusters)} clusters")
        except Exception as e:
            run_progress[email] = {"status": "failed", "error": str(e)}
            logger.error(f"Assessment failed for {email}: {e}", exc_info=True)

    background_tasks.add_task(run_pipeline)
    return {
        "status": "started",
        "email": email,
        "prs": len(snapshot.prs),
        "message": "Assessment started in background"
    }


@app.get("/api/assessments/{email}/progress")
async def assessment_progress(email: str):
    """Latest stage reported by the running pipeline"""
    progress = run_progress.get(email)
    if progress is None:
        raise HTTPException(status_code=404, detail="No assessment run for this user")
    return progress


@app.get("/api/assessments/{email}")
async def get_assessment(email: str):
    """Stored assessment for the user"""
    assessment = assessment_store.load_by_user(email)
    if assessment is None:
        raise HTTPException(status_code=404, detail="No assessment for this user")
    return assessment.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "reviewprep.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
