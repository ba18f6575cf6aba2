"""
Message Routes

GET /messages - Conversation list for the caller
GET /messages?conversation_id= - One conversation with its messages
POST /messages - Send a message (existing conversation or start one)

Conversations are between one talent and one recruiter, optionally about a job.
"""

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, HTTPException, Depends, Query

from monera.core.auth import get_current_user
from monera.db.repository import db
from monera.api.helpers import display_name
from monera.services.notification_service import create_notification
from monera.schemas.schemas import (
    ChatMessageCreate, ChatMessage, ConversationSummary, ConversationListResponse,
    ConversationDetailResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])

PARTICIPANT_COLUMN = {"TALENT": "talent_id", "CLIENT": "recruiter_id"}


def _counterpart_id(conversation: dict, user_id: str) -> str:
    if conversation["talent_id"] == user_id:
        return conversation["recruiter_id"]
    return conversation["talent_id"]


def _summarize(conversations: List[dict], user_id: str) -> List[ConversationSummary]:
    if not conversations:
        return []
    ids = [c["id"] for c in conversations]
    counterparts = {
        u["id"]: u
        for u in db.user.find_many({"id": list({_counterpart_id(c, user_id) for c in conversations})})
    }

    last_messages = {}
    unread = {cid: 0 for cid in ids}
    for message in db.message.find_many({"conversation_id": ids}, order_by="created_at"):
        last_messages[message["conversation_id"]] = message
        if not message["is_read"] and message["sender_id"] != user_id:
            unread[message["conversation_id"]] += 1

    summaries = []
    for conversation in conversations:
        counterpart_id = _counterpart_id(conversation, user_id)
        last = last_messages.get(conversation["id"])
        summaries.append(ConversationSummary(
            id=conversation["id"],
            talent_id=conversation["talent_id"],
            recruiter_id=conversation["recruiter_id"],
            job_id=conversation["job_id"],
            counterpart_id=counterpart_id,
            counterpart_name=display_name(counterparts.get(counterpart_id)),
            last_message=last["content"] if last else None,
            last_message_at=last["created_at"] if last else None,
            unread_count=unread[conversation["id"]],
            updated_at=conversation["updated_at"],
        ))
    return summaries


def _get_participating(conversation_id: str, user: dict) -> dict:
    conversation = db.conversation.find_unique({"id": conversation_id})
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    if user["user_id"] not in (conversation["talent_id"], conversation["recruiter_id"]):
        raise HTTPException(status_code=403, detail="You are not part of this conversation")
    return conversation


@router.get("", response_model=Union[ConversationDetailResponse, ConversationListResponse])
async def get_messages(
    conversation_id: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
):
    """Without conversation_id: the caller's conversations. With it: the thread, oldest first."""
    if conversation_id:
        conversation = _get_participating(conversation_id, user)
        # Reading the thread marks the counterpart's messages read
        db.message.update_many(
            {"conversation_id": conversation_id, "sender_id": _counterpart_id(conversation, user["user_id"]),
             "is_read": False},
            {"is_read": True},
        )
        messages = db.message.find_many({"conversation_id": conversation_id}, order_by="created_at")
        return ConversationDetailResponse(
            conversation=_summarize([conversation], user["user_id"])[0],
            messages=[ChatMessage(**m) for m in messages],
        )

    column = PARTICIPANT_COLUMN.get(user["role"])
    if not column:
        return ConversationListResponse(conversations=[])
    conversations = db.conversation.find_many({column: user["user_id"]}, order_by="-updated_at")
    return ConversationListResponse(conversations=_summarize(conversations, user["user_id"]))


def _find_or_create_conversation(payload: ChatMessageCreate, user: dict) -> dict:
    if user["role"] == "TALENT":
        talent_id, recruiter_id = user["user_id"], payload.recruiter_id
        counterpart_role = "CLIENT"
    elif user["role"] == "CLIENT":
        talent_id, recruiter_id = payload.talent_id, user["user_id"]
        counterpart_role = "TALENT"
    else:
        raise HTTPException(status_code=403, detail="Only talents and clients can start conversations")

    if not talent_id or not recruiter_id:
        raise HTTPException(status_code=400, detail="conversation_id or a recipient is required")

    counterpart = db.user.find_unique({"id": talent_id if counterpart_role == "TALENT" else recruiter_id})
    if not counterpart or counterpart["role"] != counterpart_role:
        raise HTTPException(status_code=404, detail="Recipient not found")

    if payload.job_id and not db.job.find_unique({"id": payload.job_id}):
        raise HTTPException(status_code=404, detail="Job not found")

    where = {"talent_id": talent_id, "recruiter_id": recruiter_id, "job_id": payload.job_id}
    return db.conversation.find_first(where) or db.conversation.create(where)


@router.post("", response_model=ChatMessage, status_code=201)
async def send_message(payload: ChatMessageCreate, user: dict = Depends(get_current_user)):
    if payload.conversation_id:
        conversation = _get_participating(payload.conversation_id, user)
    else:
        conversation = _find_or_create_conversation(payload, user)

    message = db.message.create({
        "conversation_id": conversation["id"],
        "sender_id": user["user_id"],
        "content": payload.content,
        "is_read": False,
    })
    db.conversation.update({"id": conversation["id"]}, {})

    sender = db.user.find_unique({"id": user["user_id"]})
    create_notification(
        _counterpart_id(conversation, user["user_id"]),
        "message",
        "New message",
        f"{display_name(sender)} sent you a message.",
        f"/messages?conversation_id={conversation['id']}",
    )
    return ChatMessage(**message)
