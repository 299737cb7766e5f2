# module storefront.intake.views
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from storefront.utils.security import require_user
from . import repository
from .questions import QUESTIONS, validate_responses

router = APIRouter(prefix="/api/v1/intake-form", tags=["Intake API"])


class SubmitIntakeRequest(BaseModel):
    responses: Dict[str, str] = Field(default_factory=dict)


@router.get("/questions")
async def list_questions():
    return {"questions": [q.to_dict() for q in QUESTIONS]}


@router.get("/status")
async def intake_status(user: Dict[str, Any] = Depends(require_user)):
    """Statut du questionnaire pour l’utilisateur connecté. 503 si le statut est illisible."""
    completed = await run_in_threadpool(repository.get_intake_status, user.get("id"))
    if completed is None:
        raise HTTPException(status_code=503, detail="Statut du questionnaire indisponible")
    return {"success": True, "completed": completed}


@router.post("/submit")
async def intake_submit(payload: SubmitIntakeRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Enregistre les réponses et marque le questionnaire comme complété.
    - 400 si une question manque ou si une réponse n’est pas une option proposée
    - 500 si l’enregistrement échoue
    """
    errors = validate_responses(payload.responses)
    if errors:
        raise HTTPException(status_code=400, detail=errors)
    row = await run_in_threadpool(repository.save_responses, user.get("id"), payload.responses)
    if row is None:
        raise HTTPException(status_code=500, detail="Impossible d’enregistrer le questionnaire")
    return {"success": True, "responseId": row.get("id")}
