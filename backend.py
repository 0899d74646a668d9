import logging
import sys
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Optional
from urllib.parse import quote

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel

from config import load_config
from errors import RetrievalError, ValidationError, VideoServiceError
from models import VideoFile
from retrieval import VideoRetriever, create_retriever
from video_urls import is_valid_youtube_url, normalize_quality
from whop_auth import WHOP_TOKEN_HEADER, AccessGate, Session, WhopTokenVerifier, get_company_id, get_header

logging.basicConfig(
    level=load_config()["log_level"],
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


# --- DEPENDENCIES ---
@lru_cache()
def get_settings() -> dict:
    return load_config()


@lru_cache()
def get_retriever() -> VideoRetriever:
    return create_retriever(get_settings())


@lru_cache()
def get_access_gate() -> AccessGate:
    settings = get_settings()
    return AccessGate(lambda: WhopTokenVerifier(settings["whop_app_id"], settings["whop_public_key"]))


def require_session(request: Request, gate: AccessGate = Depends(get_access_gate)) -> Session:
    return gate.verify(request.headers, request.query_params)


def optional_session(request: Request, gate: AccessGate = Depends(get_access_gate)) -> Optional[Session]:
    return gate.optional_session(request.headers, request.query_params)


# --- CONFIGURATION ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail on a bad VIDEO_BACKEND before serving anything
    get_retriever()
    yield


app = FastAPI(title="Whop YouTube Downloader", description="Fetch YouTube videos for Whop members", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=load_config()["cors_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def require_token_for_experiences(request: Request, call_next):
    # Full verification happens in the route; this only rejects requests without a token
    if request.url.path.startswith("/experience/") and not get_header(request.headers, WHOP_TOKEN_HEADER):
        return JSONResponse({"error": "Unauthorized - No user token"}, status_code=401)
    return await call_next(request)


# --- ERROR HANDLERS ---
@app.exception_handler(VideoServiceError)
async def video_service_error_handler(request: Request, exc: VideoServiceError):
    content = {"error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(content, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    if any("url" in err.get("loc", ()) for err in exc.errors()):
        return JSONResponse({"error": "URL is required"}, status_code=400)
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


# --- REQUEST MODELS ---
class VideoInfoRequest(BaseModel):
    url: Optional[str] = None


class DownloadRequest(BaseModel):
    url: Optional[str] = None
    quality: Any = None


def validate_url(url: Optional[str]) -> str:
    if not url:
        raise ValidationError("URL is required")
    if not is_valid_youtube_url(url):
        raise ValidationError("Invalid YouTube URL")
    return url


# --- 1. ROOT ---
@app.get("/")
def root(request: Request, retriever: VideoRetriever = Depends(get_retriever)):
    base_url = str(request.base_url).rstrip("/")
    return {
        "status": "Online",
        "backend": retriever.name,
        "endpoints": {
            "video_info": f"{base_url}/api/video-info",
            "download": f"{base_url}/api/download",
        }
    }


# --- 2. VIDEO INFO ---
@app.post("/api/video-info")
def video_info(
    body: VideoInfoRequest,
    session: Session = Depends(require_session),
    retriever: VideoRetriever = Depends(get_retriever),
):
    url = validate_url(body.url)

    try:
        info = retriever.describe(url)
    except RetrievalError as e:
        logger.error(f"Error in video-info API: {e.message}")
        return JSONResponse(
            {"error": "Failed to fetch video information", "details": e.message},
            status_code=500,
        )
    except Exception as e:
        logger.exception("Unexpected error in video-info API")
        return JSONResponse(
            {"error": "Failed to fetch video information", "details": str(e)},
            status_code=500,
        )

    logger.info(f"Video info for {info.id} requested by {session.user_id}")
    return {"success": True, "data": info.to_dict()}


# --- 3. DOWNLOAD ---
@app.post("/api/download")
def download(
    body: DownloadRequest,
    session: Session = Depends(require_session),
    retriever: VideoRetriever = Depends(get_retriever),
):
    url = validate_url(body.url)
    quality = normalize_quality(body.quality)

    try:
        result = retriever.fetch(url, quality)
    except RetrievalError as e:
        logger.error(f"Error in download API: {e.message}")
        return JSONResponse(
            {"error": "Failed to download video", "details": e.message},
            status_code=500,
        )
    except Exception as e:
        logger.exception("Unexpected error in download API")
        return JSONResponse(
            {"error": "Failed to download video", "details": str(e)},
            status_code=500,
        )

    logger.info(f"{session.user_id} downloaded {result.filename} at {quality}p via {retriever.name}")
    if isinstance(result, VideoFile):
        return Response(
            content=result.content,
            media_type="video/mp4",
            headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
        )
    return {"success": True, "downloadUrl": result.url}


# --- 4. WHOP PAGES ---
@app.get("/experience/{experience_id}")
def experience(experience_id: str, request: Request, gate: AccessGate = Depends(get_access_gate)):
    session = gate.optional_session(request.headers, request.query_params)
    if session is None:
        logger.error(f"No valid session for experience {experience_id}")
        return JSONResponse(
            {"error": "Authentication Error", "details": "Failed to verify your credentials. Please try again."},
            status_code=401,
        )
    return {"userId": session.user_id, "experienceId": experience_id}


@app.get("/dashboard/{company_id}")
def dashboard(company_id: str):
    return RedirectResponse(f"/app?companyId={quote(company_id, safe='')}", status_code=307)


@app.get("/app")
def app_home(request: Request, session: Optional[Session] = Depends(optional_session)):
    if session and session.experience_id:
        return RedirectResponse(f"/experience/{quote(session.experience_id, safe='')}", status_code=307)
    return {
        "authenticated": session is not None,
        "userId": session.user_id if session else None,
        "experienceId": session.experience_id if session else None,
        "companyId": session.company_id if session else get_company_id(request.headers, request.query_params),
    }


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings["host"], port=settings["port"])
