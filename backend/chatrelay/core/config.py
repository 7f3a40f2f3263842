from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Chat Relay"
    debug: bool = False

    # Paths
    data_dir: Path = Path(__file__).resolve().parent.parent.parent / "data"
    db_path: Path = Path(__file__).resolve().parent.parent.parent / "chatrelay.db"
    archive_dir: Path = Path(__file__).resolve().parent.parent.parent / "data" / "archive"
    workspace_dir: Path = Path(__file__).resolve().parent.parent.parent / "data" / "workspace"
    bots_file: Path = Path(__file__).resolve().parent.parent.parent / "data" / "bot_config.jsonl"

    # Auth: bearer token -> user namespace. Empty disables auth.
    auth_tokens: dict[str, str] = {}

    # Streaming
    stream_buffer_size: int = 64

    # LLM
    gemini_api_key: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "CHATRELAY_",
    }


settings = Settings()
