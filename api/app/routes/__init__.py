from fastapi import APIRouter, FastAPI

from .forms import router as forms_router
from .questions import router as questions_router
from .submissions import router as submissions_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(questions_router, tags=["questions"])
    app.include_router(forms_router, tags=["forms"])
    app.include_router(submissions_router, tags=["submissions"])


__all__ = ["include_modular_routers", "APIRouter"]
