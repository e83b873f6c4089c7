"""
quizeval/routes/__init__.py
Route registration
"""
from fastapi import APIRouter

from quizeval.routes import evaluation, performance

router = APIRouter()

router.include_router(evaluation.router)
router.include_router(performance.router)
