from resume_analyzer.ai.config import load_ai_config
from resume_analyzer.ai.types import GenerationClient

from resume_analyzer.ai.providers.openai_provider import OpenAIProvider


def get_generation_client() -> GenerationClient:
    cfg = load_ai_config()

    if cfg.provider == "openai":
        return OpenAIProvider(
            model=cfg.model,
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout_s=cfg.timeout_s,
            transport_retries=cfg.transport_retries,
            temperature=cfg.temperature,
        )

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")
