"""SOOD persona chat: start the server with: python app.py"""

import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from sood.api.routes import router, init_llm, init_tts, init_orchestrator
from sood.config import load_config

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("sood")

# ── App ──────────────────────────────────────────────────────────────────────

config = load_config()

app = FastAPI(title="SOOD Persona Chat", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.server.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error response is a flat {"error": ..., ...} object

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    fields = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body", "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.info("Rejected malformed request on %s: %s", request.url.path, fields)
    return JSONResponse(status_code=400, content={"error": "Invalid request", "fields": fields})


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Something went wrong!"})


# API routes
app.include_router(router)

# Serve the frontend from the same origin, behind the API routes
static_dir = Path(config.server.static_dir)
if not static_dir.is_absolute():
    static_dir = Path(__file__).parent / static_dir
if static_dir.is_dir():
    app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")


# ── Startup ──────────────────────────────────────────────────────────────────

@app.on_event("startup")
async def startup():
    llm = init_llm(config)
    tts = init_tts(config)
    init_orchestrator(config, llm, tts)

    ok = await llm.health_check()
    if ok:
        logger.info("Completion API is reachable, SOOD is ready!")
    else:
        logger.warning(
            "Completion API not reachable. The server will run but /init and /chat will fail "
            "until %s responds.", llm.endpoint,
        )


# ── Run ──────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run("app:app", host=config.server.host, port=config.server.port)
