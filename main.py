# In main.py

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette_authlib.middleware import AuthlibMiddleware as SessionMiddleware

from google.auth import exceptions as google_auth_exceptions
from google.cloud import firestore
import vertexai
from vertexai.generative_models import GenerativeModel

import GateAuth as gate
import secretmanager
import settings
from services.ai_writing_prompts import GeminiSuggester
from services.forum_store import ForumStore

# Import routers
from routers import ai, comments, gate as gate_router, posts, users

logger = logging.getLogger('uvicorn.error')


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: Initializing resources...")
    try:
        app.state.forum_store = ForumStore(firestore.AsyncClient())
        logger.info("Firestore Async client initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize Firestore Async client: {e}")
        app.state.forum_store = None

    app.state.password_verifier = gate.SecretManagerPasswordVerifier()

    try:
        logger.info(f"Initializing Vertex AI with Project ID: {settings.GCP_PROJECT_ID} and Location: {settings.GCP_LOCATION}")
        vertexai.init(project=settings.GCP_PROJECT_ID, location=settings.GCP_LOCATION)
        app.state.suggester = GeminiSuggester(GenerativeModel(settings.TEXT_GEN_MODEL_NAME))
        logger.info("Vertex AI initialized successfully.")
    except google_auth_exceptions.DefaultCredentialsError as e:
        logger.error(f"Vertex AI DefaultCredentialsError: {e}. Ensure ADC is configured or service account is set up.")
        app.state.suggester = None
    except Exception as e:
        logger.error(f"Failed to initialize Vertex AI: {e}")
        app.state.suggester = None

    yield
    logger.info("Application shutdown: Cleaning up resources...")
    store = getattr(app.state, 'forum_store', None)
    if store:
        try:
            await store.db.close()  # Close the async client
            logger.info("Firestore Async client closed.")
        except Exception as e:
            logger.error(f"Error closing Firestore client: {e}")


def get_session_key() -> str:
    return settings.SESSION_SECRET_KEY or secretmanager.get_secret(settings.SESSION_SECRET)


app = FastAPI(lifespan=lifespan)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(gate_router.router)
app.include_router(ai.router)
app.include_router(users.router)

app.add_middleware(
    SessionMiddleware,
    secret_key=get_session_key(),
    session_cookie="naqd_session",
    max_age=settings.SESSION_MAX_AGE_SECONDS,
)
app.add_middleware(
    TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS
)
