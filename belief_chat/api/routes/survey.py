"""
Survey API routes.

Pre-survey submission creates the participant the interview is attached to.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body

from belief_chat.api.dependencies import SurveyServiceDep
from belief_chat.api.schemas import SurveySubmitResponse

router = APIRouter(prefix="/survey", tags=["survey"])


@router.post("/submit", response_model=SurveySubmitResponse)
async def submit_survey(
    service: SurveyServiceDep,
    answers: Dict[str, Any] = Body(...),
):
    """Store survey answers and return the new participant's ID.

    Only `views_changed` (Yes/No) is validated; other fields are kept as sent.
    """
    participant = service.submit(answers)
    return SurveySubmitResponse(participant_id=participant.id)
