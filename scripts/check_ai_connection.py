import asyncio
import sys

from ventfreely.ai.chatbot import ChatbotService
from ventfreely.core.config import settings


async def check_connection():
    if not settings.OPENAI_API_KEY:
        print("CRITICAL: OPENAI_API_KEY is missing from environment.")
        sys.exit(1)

    service = ChatbotService()
    print(f"Primary Model: {service.model}")
    print(f"Fallback Model: {service.fallback_model}")

    try:
        await service.verify_connection()
    except Exception as e:
        print(f"CRITICAL FAILURE: could not reach OpenAI: {e}")
        sys.exit(1)

    reply = await service.reply([{"role": "user", "content": "Hello, are you online?"}])
    print("SUCCESS: companion replied.")
    print(f"Response: {reply}")


if __name__ == "__main__":
    asyncio.run(check_connection())
