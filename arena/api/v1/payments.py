"""
Payment gateway webhook
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from arena.api.errors import unwrap_or_raise
from arena.core.dependencies import get_operations, verify_webhook_secret
from arena.database import get_db
from arena.schemas.wallet import FundsReceivedEvent, FundsReceivedResponse
from arena.services.operations import TournamentOperations

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/webhook",
    response_model=FundsReceivedResponse,
    dependencies=[Depends(verify_webhook_secret)]
)
async def funds_received(
    event: FundsReceivedEvent,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations)
):
    """Credit a confirmed deposit; redelivered events are acknowledged without crediting again"""
    return unwrap_or_raise(ops.on_funds_received(db, event))
