import config  # Must be imported first to set env vars before google-genai initializes
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from admin.router import router as admin_router
from portal.router import router as portal_router
from incidents.context import build_portal_context

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
# Silence verbose INFO from Google client internals; keep WARNING+ only
logging.getLogger("google_genai").setLevel(logging.WARNING)
logging.getLogger("google.cloud.firestore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="IncidenBot",
    description="AI incident intake and triage for coliving tenants and staff",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(portal_router)
app.include_router(admin_router)


@app.on_event("startup")
async def startup_portal():
    """
    Build the portal context and open the live incident subscription.

    The in-memory store is used automatically when Firestore is disabled or
    unreachable, so local development needs no GCP credentials.
    """
    portal = build_portal_context()
    portal.start()
    app.state.portal = portal
    if not portal.classifier.configured:
        logger.warning("GEMINI_API_KEY not set — every submission will fail classification.")


@app.on_event("shutdown")
async def shutdown_portal():
    portal = getattr(app.state, "portal", None)
    if portal is not None:
        await portal.stop()


@app.get("/health")
async def health():
    portal = getattr(app.state, "portal", None)
    return {
        "status": "ok",
        "model": config.GEMINI_MODEL,
        "backend": "vertex_ai" if config.USE_VERTEX_AI else "ai_studio",
        "project": config.GOOGLE_CLOUD_PROJECT if config.USE_VERTEX_AI else None,
        "api_key_configured": bool(config.GEMINI_API_KEY),
        "store": portal.store.kind if portal else None,
        "subscription_connected": portal.feed.connected if portal else False,
        "webhook_configured": portal.notifier.configured if portal else False,
        "coliving": config.COLIVING_NAME,
    }


@app.get("/")
async def root():
    return {"status": "ok", "service": "incidenbot"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
