"""Bot configuration: which model to call and how to reach it."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class BotConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    model: str
    base_url: str = ""
    api_key: str = ""
    api_type: str = "openai"  # openai | openrouter | gemini
    custom_api_path: Optional[str] = None
    max_tokens: Optional[int] = None
    reasoning_effort: Optional[str] = None
    openrouter_config: Optional[dict[str, Any]] = None
    tool_servers: list[str] = []
