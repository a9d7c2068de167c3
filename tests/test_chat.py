from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from ventfreely.ai.chatbot import ChatbotService
from ventfreely.core.utils import utcnow
from ventfreely.db.models.conversation import Conversation, ConversationMessage
from ventfreely.db.models.profile import Profile, UserMemory
from ventfreely.db.models.subscription import Subscription
from ventfreely.services.memory import build_memory_block, compute_memory_confidence

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def completion(text):
    return MagicMock(choices=[MagicMock(message=MagicMock(content=text))])


def memory(**fields):
    defaults = dict(dominant_emotions=None, recurring_themes=None, preferred_tone=None,
                    energy_pattern=None, updated_at=NOW)
    defaults.update(fields)
    return SimpleNamespace(**defaults)


@pytest.mark.asyncio
async def test_chat_replies_and_stores_exchange(client, db, auth_headers):
    response = await client.post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "I feel so tired lately"}]},
        headers=auth_headers("user-1"),
    )

    assert response.status_code == 200
    reply = response.json()["reply"]
    assert "draining" in reply

    conversation = db.query(Conversation).filter(Conversation.user_id == "user-1").one()
    assert conversation.last_user_message == "I feel so tired lately"
    assert conversation.last_assistant_message == reply
    roles = [m.role for m in db.query(ConversationMessage).order_by(ConversationMessage.id)]
    assert roles == ["user", "assistant"]


@pytest.mark.asyncio
async def test_chat_paywall_includes_access(client, db, auth_headers):
    db.add(Subscription(user_id="user-1", status="expired", trial_ends_at=utcnow() - timedelta(days=2)))
    db.commit()

    response = await client.post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "hello"}]},
        headers=auth_headers("user-1"),
    )

    assert response.status_code == 402
    detail = response.json()["detail"]
    assert detail["error"] == "PAYWALL"
    assert detail["access"]["reason"] == "trial_expired"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"messages": []}, {"messages": [{"role": "system", "content": "x"}]}, {}])
async def test_chat_rejects_malformed_body(client, auth_headers, body):
    response = await client.post("/api/chat", json=body, headers=auth_headers("user-1"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_chat_failure_returns_500(client, auth_headers):
    with patch("ventfreely.routes.chat.chatbot_service") as mock_service:
        mock_service.reply = AsyncMock(side_effect=openai.OpenAIError("down"))
        response = await client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hello"}]},
            headers=auth_headers("user-1"),
        )

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to generate reply"


@pytest.mark.asyncio
async def test_chat_passes_memory_block_unless_disabled(client, db, auth_headers):
    db.add(UserMemory(user_id="user-1", dominant_emotions=["anxious", "hopeful"],
                      recurring_themes=["work"], updated_at=utcnow()))
    db.commit()

    with patch("ventfreely.routes.chat.chatbot_service") as mock_service:
        mock_service.reply = AsyncMock(return_value="I hear you.")
        mock_service.summarize = AsyncMock(return_value=None)

        await client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]},
                          headers=auth_headers("user-1"))
        assert "work" in mock_service.reply.call_args.args[1]

        profile = db.query(Profile).filter(Profile.user_id == "user-1").one()
        profile.memory_enabled = False
        db.commit()
        await client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]},
                          headers=auth_headers("user-1"))
        assert mock_service.reply.call_args.args[1] == ""


@pytest.mark.asyncio
async def test_history_returns_active_conversation(client, auth_headers):
    headers = auth_headers("user-1")

    empty = await client.get("/api/chat/history", headers=headers)
    assert empty.json() == {"conversationId": None, "messages": []}

    await client.post("/api/chat", json={"messages": [{"role": "user", "content": "thank you"}]}, headers=headers)
    response = await client.get("/api/chat/history", headers=headers)

    data = response.json()
    assert data["conversationId"] is not None
    assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
    assert data["messages"][0]["content"] == "thank you"


@pytest.mark.asyncio
async def test_history_ignores_stale_conversations(client, db, auth_headers):
    db.add(Conversation(user_id="user-1", status="active", last_active_at=utcnow() - timedelta(minutes=30)))
    db.commit()

    response = await client.get("/api/chat/history", headers=auth_headers("user-1"))
    assert response.json()["conversationId"] is None


def test_memory_confidence_scoring():
    assert compute_memory_confidence(None, NOW) == ("none", 0)

    full = memory(dominant_emotions=["calm", "tired"], recurring_themes=["family"],
                  preferred_tone="gentle", energy_pattern="low mornings")
    assert compute_memory_confidence(full, NOW) == ("high", 90)

    stale = memory(dominant_emotions=["calm"], recurring_themes=["family"], updated_at=NOW - timedelta(days=31))
    assert compute_memory_confidence(stale, NOW) == ("medium", 45)

    thin = memory(preferred_tone="gentle", updated_at=NOW - timedelta(days=90))
    assert compute_memory_confidence(thin, NOW) == ("low", 0)


def test_memory_block_skips_low_confidence():
    assert build_memory_block(memory(preferred_tone="gentle"), NOW) == ""

    block = build_memory_block(memory(dominant_emotions=["calm"], recurring_themes=["work"]), NOW)
    assert "Confidence: medium (60/100)" in block
    assert "- Themes that sometimes come up: work" in block


@pytest.mark.asyncio
async def test_ai_fallback_logic():
    service = ChatbotService(api_key="test-key", model="primary-model", fallback_model="fallback-model")
    mock_client = AsyncMock()
    service.async_client = mock_client

    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.NotFoundError(message="Model not found", response=httpx.Response(404, request=request), body=None)
    mock_client.chat.completions.create.side_effect = [error, completion("Fallback Success")]

    reply = await service.reply([{"role": "user", "content": "Test Message"}])

    assert reply == "Fallback Success"
    calls = mock_client.chat.completions.create.call_args_list
    assert [c.kwargs["model"] for c in calls] == ["primary-model", "fallback-model"]
    assert calls[0].kwargs["messages"][0]["role"] == "system"


@pytest.mark.asyncio
async def test_summary_only_for_longer_conversations():
    service = ChatbotService(api_key="test-key")
    service.async_client = AsyncMock()
    service.async_client.chat.completions.create.return_value = completion("  A short summary.  ")

    short = [{"role": "user", "content": "hi"}]
    assert await service.summarize(short, "hello") is None

    longer = [{"role": "user", "content": str(i)} for i in range(4)]
    assert await service.summarize(longer, "ok") == "A short summary."
