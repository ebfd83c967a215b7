"""AI helper endpoints for form owners."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from smartresponse.core.deps import get_current_account, get_db
from smartresponse.schemas.ai import ImprovePromptRequest, ImprovePromptResponse
from smartresponse.services import system_settings_service, text_generation_service

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/improve-prompt", response_model=ImprovePromptResponse)
async def improve_prompt(
    data: ImprovePromptRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    model_string = system_settings_service.get_text_model(db)
    improved = await text_generation_service.improve_prompt(model_string, data.prompt)
    return ImprovePromptResponse(prompt=improved.strip())
