import logging
from typing import Dict, List, Optional
import openai
from ventfreely.core.config import settings
from ventfreely.ai.prompts import (
    SUMMARY_SYSTEM_PROMPT,
    FALLBACK_REPLY,
    build_system_prompt,
)

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_TOKENS = 400
SUMMARY_TEMPERATURE = 0.4
SUMMARY_MAX_TOKENS = 200
SUMMARY_MIN_MESSAGES = 4


class ChatbotService:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, fallback_model: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.fallback_model = fallback_model or settings.OPENAI_FALLBACK_MODEL

        if api_key:
            self.async_client = openai.AsyncOpenAI(api_key=api_key)
            self.simulated = False
        else:
            self.async_client = None
            self.simulated = True

    async def reply(self, messages: List[Dict[str, str]], memory_block: str = "") -> str:
        """
        Produces the companion's next message for the given history.
        `messages` holds {"role": "user"|"assistant", "content": ...} dicts.
        """
        if self.simulated:
            return self._simulated_reply(messages)

        chat = [{"role": "system", "content": build_system_prompt(memory_block)}] + self._normalize(messages)
        text = await self._complete(chat, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
        return text or FALLBACK_REPLY

    async def summarize(self, messages: List[Dict[str, str]], reply: str) -> Optional[str]:
        """Short summary of the conversation so far, or None when it is too short to bother."""
        if self.simulated or len(messages) < SUMMARY_MIN_MESSAGES:
            return None

        chat = (
            [{"role": "system", "content": SUMMARY_SYSTEM_PROMPT}]
            + self._normalize(messages)
            + [{"role": "assistant", "content": reply}]
        )
        try:
            text = await self._complete(chat, temperature=SUMMARY_TEMPERATURE, max_tokens=SUMMARY_MAX_TOKENS)
        except openai.OpenAIError as e:
            logger.error(f"Summary generation failed: {e}")
            return None
        return (text or "").strip() or None

    @staticmethod
    def _normalize(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        return [
            {"role": "user" if m["role"] == "user" else "assistant", "content": m["content"]}
            for m in messages
        ]

    async def _complete(self, chat: List[Dict[str, str]], temperature: float, max_tokens: int) -> Optional[str]:
        try:
            response = await self.async_client.chat.completions.create(
                model=self.model,
                messages=chat,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except (openai.NotFoundError, openai.BadRequestError) as e:
            logger.warning(f"Primary model {self.model} failed ({e}). Switching to fallback: {self.fallback_model}.")
            response = await self.async_client.chat.completions.create(
                model=self.fallback_model,
                messages=chat,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        return response.choices[0].message.content

    def _simulated_reply(self, messages: List[Dict[str, str]]) -> str:
        last = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        msg = last.lower()

        if any(w in msg for w in ("tired", "exhausted", "drained")):
            return "That sounds really draining. What has been taking the most out of you lately?"
        if any(w in msg for w in ("anxious", "worried", "nervous")):
            return "It makes sense to feel uneasy with that on your mind. Want to tell me a bit more about it?"
        if any(w in msg for w in ("thank", "better")):
            return "I'm glad this helped a little. I'm here whenever you want to talk."

        return FALLBACK_REPLY

    async def verify_connection(self):
        """Forces a call to OpenAI to verify the API key. Raises when it fails."""
        if self.simulated:
            logger.warning("Chatbot is in simulated mode (No API Key).")
            return
        await self.async_client.models.list()
        logger.info("OpenAI connection verified.")


# Global Instance
chatbot_service = ChatbotService()
