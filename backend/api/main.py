from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from typing import List, Optional
from pydantic import BaseModel
import asyncio
import threading
import logging

from api.config import settings
from api.database import init_db, engine
from api.embeddings import EmbeddingClient
from api.logging_setup import configure_logging
from api.repository import JobPostingRepository
from crawler.manager import CrawlManager

configure_logging()

logger = logging.getLogger(__name__)


# Process-wide crawl manager, created in the lifespan handler
crawl_manager: Optional[CrawlManager] = None
embedding_client: Optional[EmbeddingClient] = None

# Crawl running in the background, one at a time
_crawl_thread: Optional[threading.Thread] = None


def create_manager() -> CrawlManager:
    """Build the crawl manager from settings."""
    global embedding_client
    embedding_client = EmbeddingClient(
        base_url=settings.embedding_url,
        model=settings.embedding_model,
        api_key=settings.embedding_api_key,
        timeout=settings.embedding_timeout,
    )
    if not embedding_client.enabled:
        logger.warning("EMBEDDING_URL not set, postings will be stored without vectors")
    return CrawlManager(settings, JobPostingRepository(), embedding_client)


def get_manager() -> CrawlManager:
    """Dependency returning the crawl manager singleton."""
    global crawl_manager
    if crawl_manager is None:
        crawl_manager = create_manager()
    return crawl_manager


async def cleanup_resources():
    """Clean up all resources on shutdown."""
    logger.info("Cleaning up resources...")
    loop = asyncio.get_running_loop()

    if crawl_manager is not None:
        crawl_manager.shutdown()
    if _crawl_thread is not None and _crawl_thread.is_alive():
        logger.info("Waiting for running crawl to stop...")
        await loop.run_in_executor(None, lambda: _crawl_thread.join(timeout=3.0))
    if embedding_client is not None:
        embedding_client.close()

    try:
        logger.info("Closing database connections...")
        await loop.run_in_executor(None, lambda: engine.dispose(close=True))
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database connections: {e}")

    logger.info("Resource cleanup complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Job Crawler Backend Starting Up")
    logger.info("=" * 60)
    logger.info(f"Log file: {settings.log_file}")
    logger.info(f"Database: {settings.database_url}")
    logger.info(f"CORS origins: {settings.cors_origins}")
    init_db()
    logger.info("Database initialized successfully")

    # A worker pool that cannot be created is fatal at startup
    get_manager()
    logger.info("Backend ready to accept requests")

    yield  # Application runs here

    # Shutdown
    logger.info("=" * 60)
    logger.info("Job Crawler Backend Shutting Down")
    logger.info("=" * 60)

    try:
        await asyncio.wait_for(cleanup_resources(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("Shutdown cleanup timed out, forcing exit")
    except Exception as e:
        logger.error(f"Error during shutdown cleanup: {e}")

    logger.info("Shutdown complete")


app = FastAPI(
    title="Job Crawler API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
# Note: allow_credentials must be False when allow_origins is ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Return empty response for favicon requests"""
    return Response(status_code=204)


class CrawlSitesRequest(BaseModel):
    site_ids: List[str]


class ExtractionTestRequest(BaseModel):
    site_id: str
    url: Optional[str] = None


def _start_crawl(manager: CrawlManager, site_ids: Optional[List[str]] = None) -> dict:
    """Run a crawl on a background thread; the summary lands in manager.last_summary."""
    global _crawl_thread
    if _crawl_thread is not None and _crawl_thread.is_alive():
        raise HTTPException(status_code=409, detail="A crawl is already running")

    def run():
        if site_ids is None:
            manager.crawl_all()
        else:
            manager.crawl_sites(site_ids)

    _crawl_thread = threading.Thread(target=run, name="crawl", daemon=True)
    _crawl_thread.start()
    return {"status": "started", "site_ids": site_ids if site_ids is not None else "all"}


# API Endpoints

@app.get("/")
async def root():
    return {"message": "Job Crawler API", "version": "1.0.0"}


@app.post("/api/crawl")
async def crawl_all_sites(manager: CrawlManager = Depends(get_manager)):
    """Start crawling every enabled site"""
    logger.info("Full crawl requested")
    return _start_crawl(manager)


@app.post("/api/crawl/sites")
async def crawl_selected_sites(request: CrawlSitesRequest, manager: CrawlManager = Depends(get_manager)):
    """Start crawling the given sites; unknown ids are skipped"""
    if not request.site_ids:
        raise HTTPException(status_code=400, detail="site_ids must not be empty")
    logger.info(f"Crawl requested for sites: {request.site_ids}")
    return _start_crawl(manager, request.site_ids)


@app.get("/api/crawl/result")
async def get_crawl_result(manager: CrawlManager = Depends(get_manager)):
    """Summary of the most recent finished crawl"""
    if manager.last_summary is None:
        raise HTTPException(status_code=404, detail="No crawl has finished yet")
    return manager.last_summary.to_dict()


@app.get("/api/crawl/status")
async def get_crawl_status(
    site_id: Optional[str] = Query(None, description="Limit to one site"),
    manager: CrawlManager = Depends(get_manager),
):
    """Per-site stored-posting status"""
    running = _crawl_thread is not None and _crawl_thread.is_alive()
    if site_id is not None:
        if site_id not in manager.get_supported_sites():
            raise HTTPException(status_code=404, detail=f"Unknown site: {site_id}")
        return {"running": running, "sites": [manager.get_site_status(site_id)]}
    return {"running": running, "sites": manager.get_all_sites_status()}


@app.get("/api/crawl/statistics")
async def get_crawl_statistics(manager: CrawlManager = Depends(get_manager)):
    return manager.get_site_statistics()


@app.get("/api/sites")
async def list_sites(manager: CrawlManager = Depends(get_manager)):
    """Supported sites (id -> display name)"""
    return manager.get_supported_sites()


@app.post("/api/crawl/test-extraction")
async def test_extraction(request: ExtractionTestRequest, manager: CrawlManager = Depends(get_manager)):
    """Load one listing page and show what the adapter extracts"""
    try:
        return await asyncio.get_running_loop().run_in_executor(
            None, lambda: manager.test_extraction(request.site_id, request.url)
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/jobs/cleanup")
async def cleanup_old_jobs(
    days: int = Query(30, ge=1, description="Delete postings older than this many days"),
    manager: CrawlManager = Depends(get_manager),
):
    return {"deleted": manager.cleanup_old_jobs(days)}


@app.post("/api/jobs/deactivate-expired")
async def deactivate_expired_jobs(manager: CrawlManager = Depends(get_manager)):
    return {"deactivated": manager.deactivate_expired_jobs()}


if __name__ == "__main__":
    import uvicorn

    # Configure uvicorn for faster shutdown
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        access_log=True,
        log_config=None,  # Keep our handlers; the access filter is attached in configure_logging
        timeout_keep_alive=5,
        timeout_graceful_shutdown=5.0,
    )
