"""
Sahayak — Conversation API Router
Sessions and turns. Each turn returns the structured ResponsePayload for the
downstream text-generation / speech pipeline.
"""

from fastapi import APIRouter, Depends

from sahayak.api.dependencies import Services, get_conversation_service, get_services
from sahayak.models.api import CreateSessionRequest, SessionResponse, TurnRequest
from sahayak.models.conversation import ConversationContext
from sahayak.models.payload import ResponsePayload
from sahayak.services.conversation_service import ConversationService
from sahayak.utils.logger import logger

router = APIRouter()


def _session_response(context: ConversationContext) -> SessionResponse:
    return SessionResponse(
        session_id=context.session_id,
        citizen_id=context.citizen_id,
        language=context.language,
        state=context.state.value,
        turns=len(context.turns),
        current_topic=context.current_topic,
        referenced_opportunities=list(context.referenced_opportunities),
        clarification_count=context.clarification_count,
        failure_count=context.failure_count,
    )


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: CreateSessionRequest,
    conversation: ConversationService = Depends(get_conversation_service),
):
    """Open a conversation session for a citizen."""
    context = await conversation.start_session(body.citizen_id, body.language)
    return _session_response(context)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, services: Services = Depends(get_services)):
    """Current context of a session (renewed if it had idled out)."""
    async with services.sessions.lock(session_id):
        context = services.tracker.get_context(session_id)
    return _session_response(context)


@router.post("/{session_id}/turns", response_model=ResponsePayload)
async def post_turn(
    session_id: str,
    body: TurnRequest,
    conversation: ConversationService = Depends(get_conversation_service),
):
    """
    Process one utterance.
    Pipeline: classify → route → search / eligibility / profile → payload
    """
    payload = await conversation.handle_turn(session_id, body.text.strip(), body.classification)
    logger.info(f"💬 {session_id}: {payload.kind.value} ({len(payload.opportunities)} opportunities)")
    return payload
