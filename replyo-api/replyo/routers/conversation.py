from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from replyo.conversations import router as conversation_router
from replyo.database import get_db
from replyo.schemas.conversation import ConversationMessageRequest, ConversationResetRequest
from replyo.services.business_profile_service import BusinessNotFoundError
from replyo.services.rate_limiter import message_rate_limit

router = APIRouter(prefix="/conversation", tags=["conversation"])


@router.post("/message", dependencies=[Depends(message_rate_limit)])
def process_message(request: ConversationMessageRequest, db: Session = Depends(get_db)):
    """Run one message through the business's conversation flow."""
    try:
        result = conversation_router.process_message(db, request.ig_username, request.user_id, request.message)
    except BusinessNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    db.commit()
    return {"success": True, "data": result.to_dict()}


@router.post("/reset")
def reset_conversation(request: ConversationResetRequest, db: Session = Depends(get_db)):
    try:
        conversation_router.reset_conversation(db, request.ig_username, request.user_id)
    except BusinessNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    db.commit()
    return {"success": True, "message": "Conversation reset successfully"}


@router.get("/stats")
def conversation_stats():
    return {"success": True, "data": conversation_router.get_session_stats()}
