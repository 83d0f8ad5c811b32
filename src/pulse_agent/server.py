"""FastAPI service exposing the brief-to-artifact pipeline to the web form."""

from __future__ import annotations

import os
from typing import Any, Dict

from fastapi import Body, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import DEFAULT_BRIEF_DEFAULTS
from .errors import GENERATION_FAILURE_MESSAGE, GenerationFailure
from .logger import get_logger

logger = get_logger(__name__)

app = FastAPI(title="Pulse Agent")


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() == "true"


def _add_cors(app: FastAPI) -> None:
    """
    Let the brief form post to /api/generate from its own origin.

    CORS_ALLOW_ORIGINS pins the form's origins once CORS_ALLOW_ALL is "false";
    otherwise any origin may call, without cookies.
    """
    pinned = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]
    if _env_flag("CORS_ALLOW_ALL") or not pinned:
        # Wildcard origins cannot be combined with credentials.
        origins, credentials = ["*"], False
    else:
        origins, credentials = pinned, _env_flag("CORS_ALLOW_CREDENTIALS")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )


_add_cors(app)


async def _run_pipeline(payload: Dict[str, Any]):
    """
    Lazy import wrapper so tests can patch the pipeline without touching the app.
    """
    from .workflow import run_pipeline

    return await run_pipeline(payload)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/options")
def options() -> Dict[str, Any]:
    """Option catalogues and topic presets the brief form offers."""
    defaults = DEFAULT_BRIEF_DEFAULTS
    return {
        "tones": defaults.tones,
        "cadences": defaults.cadences,
        "styles": defaults.styles,
        "regions": defaults.regions,
        "presets": [preset.model_dump() for preset in defaults.presets],
    }


@app.post("/api/generate")
async def generate(payload: Any = Body(default=None)) -> JSONResponse:
    """
    Run one brief end to end.

    Success returns {"result", "steps"}; any failure returns 500 with a single
    generic error message and no partial result.
    """
    brief_payload = payload if isinstance(payload, dict) else {}
    try:
        run = await _run_pipeline(brief_payload)
    except GenerationFailure as exc:
        logger.debug("Generation failed: %s", exc.__cause__ or exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERATION_FAILURE_MESSAGE},
        )
    except Exception:
        logger.exception("Agent failure")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERATION_FAILURE_MESSAGE},
        )
    return JSONResponse(status_code=status.HTTP_200_OK, content=run.to_payload())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pulse_agent.server:app",
        host=os.getenv("PULSE_HOST", "0.0.0.0"),
        port=int(os.getenv("PULSE_PORT", "8000")),
        reload=os.getenv("PULSE_RELOAD", "false").lower() == "true",
    )
