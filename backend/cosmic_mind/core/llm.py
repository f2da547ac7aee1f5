import httpx
import logging
from typing import Dict, List, Any, Optional
from cosmic_mind.core.config import settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "⚠️ AI service not configured. Please add GROQ_API_KEY to .env file. "
    "Get FREE key from: https://console.groq.com"
)
ALL_MODELS_FAILED_MESSAGE = "⚠️ All Groq models failed. Please try again later."


class LLMClient:
    """Groq chat completions over its OpenAI-compatible API"""

    def __init__(
        self,
        api_key: str = settings.groq_api_key,
        base_url: str = settings.groq_base_url,
        models: Optional[List[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.models = list(models if models is not None else settings.groq_models)
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=settings.groq_timeout_s
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = 1024
    ) -> Dict[str, Any]:
        """Send chat completion request to OpenAI-compatible endpoint"""

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        response = await self.client.post("/chat/completions", json=payload)
        response.raise_for_status()
        return response.json()

    async def ask(self, prompt: str, context: Optional[str] = None) -> str:
        """Answer a prompt, trying each configured model in order"""

        if not self.configured:
            return NOT_CONFIGURED_MESSAGE

        if context:
            system = (
                "You are a helpful AI assistant. Use this context to answer questions:\n\n"
                f"{context}\n\n"
                "Answer based ONLY on the provided context. If the answer isn't in the context, "
                "say \"I cannot find that information in the provided context.\""
            )
        else:
            system = "You are a helpful AI assistant. Respond in a friendly and concise manner."

        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

        for model in self.models:
            try:
                result = await self.chat_completion(messages, model=model)
                content = result["choices"][0]["message"]["content"]
                if content:
                    logger.info(f"✅ Groq model {model} worked")
                    return content
            except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
                logger.warning(f"❌ Groq model {model} failed: {str(e).splitlines()[0] if str(e) else e!r}")
                continue

        return ALL_MODELS_FAILED_MESSAGE

    async def aclose(self) -> None:
        await self.client.aclose()
