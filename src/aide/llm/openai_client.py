from typing import Optional
from openai import AsyncOpenAI
from aide.config import settings
from aide.logging import logger
from aide.relay.agent import AgentReply

SYSTEM_PROMPT = """\
You are a personal assistant reached through a chat app.
Messages may start with a [Memory context] block listing things remembered
about the user; use it when relevant and do not repeat it back verbatim.
Be concise."""


def make_client() -> AsyncOpenAI:
    # settings.OPENAI_API_KEY is SecretStr; the client would otherwise only read the env var.
    api_key = settings.OPENAI_API_KEY.get_secret_value() if settings.OPENAI_API_KEY else None
    return AsyncOpenAI(api_key=api_key)


class OpenAIAgent:
    """Relays prompts to the Responses API, continuing threads by response id."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = settings.OPENAI_MODEL_AGENT,
        instructions: str = SYSTEM_PROMPT,
    ):
        self.client = client or make_client()
        self.model = model
        self.instructions = instructions

    async def run(self, prompt: str, session_id: Optional[str] = None) -> AgentReply:
        kwargs = {
            "model": self.model,
            "instructions": self.instructions,
            "input": prompt,
        }
        if session_id:
            kwargs["previous_response_id"] = session_id
        try:
            response = await self.client.responses.create(**kwargs)
        except Exception as e:
            logger.error(f"OpenAI Responses API call failed: {e}")
            raise
        return AgentReply(text=response.output_text or "", session_id=response.id)
