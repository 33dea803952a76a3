import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from . import config
from .database import SessionLocal
from .errors import ConflictError, NotFoundError, OptionError, ValidationError
from .routes import include_modular_routers

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Form Options API")
include_modular_routers(app)


def _status_for(exc: OptionError) -> int:
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    return 500


@app.exception_handler(OptionError)
def option_error_handler(request: Request, exc: OptionError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("[OPTIONS] unhandled option error path=%s: %s", request.url.path, exc.message)
    else:
        logger.info("[OPTIONS] %s path=%s problems=%s", exc.code, request.url.path, len(exc.errors))
    return JSONResponse(status_code=status, content={"detail": exc.to_detail()})


def run_migrations() -> None:
    migrations_dir = config.MIGRATIONS_DIR
    if not migrations_dir.exists() or not migrations_dir.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")

    files = sorted([f.name for f in migrations_dir.iterdir() if f.is_file() and f.suffix == ".sql"])
    with SessionLocal() as db:
        for fname in files:
            sql = (migrations_dir / fname).read_text(encoding="utf-8")
            db.execute(text(sql))
        db.commit()
    logger.info("[OPTIONS] applied %s migration files from %s", len(files), migrations_dir)


def wait_for_db(max_attempts: int = config.DB_WAIT_ATTEMPTS, delay_seconds: float = config.DB_WAIT_DELAY_SECONDS) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
                db.commit()
            return
        except OperationalError as exc:
            last_err = exc
            logger.warning("[OPTIONS] database not ready, retrying in %ss", delay_seconds)
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    run_migrations()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
