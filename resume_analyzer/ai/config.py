from dataclasses import dataclass

from resume_analyzer.core.config import settings


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    api_key: str | None
    base_url: str
    timeout_s: float
    transport_retries: int
    temperature: float | None


def load_ai_config() -> AIConfig:
    return AIConfig(
        provider=settings.ai_provider,
        model=settings.ai_model,
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        timeout_s=settings.ai_timeout_s,
        transport_retries=settings.ai_transport_retries,
        temperature=settings.ai_temperature,
    )
