from fastapi import HTTPException, Request

from engine import DirectoryEngine
from logging_config import get_logger
from schemas.results import Outcome, Result

logger = get_logger(__name__)

STATUS_CODES = {
    Outcome.NOT_FOUND: 404,
    Outcome.AUTH_FAILED: 401,
    Outcome.CONFLICT: 409,
    Outcome.FORBIDDEN: 403,
    Outcome.STORE_UNAVAILABLE: 503,
    Outcome.INCONSISTENT: 500,
}


def get_engine(request: Request) -> DirectoryEngine:
    return request.app.state.engine


def respond(result: Result) -> Result:
    """Return a successful result as the body, raise anything else with the result as detail."""
    if result.ok:
        return result
    status_code = STATUS_CODES[result.outcome]
    if status_code >= 500:
        logger.error(f"Request failed: {result.outcome.value} ({result.event.value if result.event else 'no detail'})")
    raise HTTPException(status_code=status_code, detail=result.model_dump(mode="json"))
