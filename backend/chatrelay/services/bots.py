"""Read-only lookup of bot configurations from a JSONL file."""

import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from chatrelay.core.exceptions import NotFoundError
from chatrelay.models.bot import BotConfig

logger = logging.getLogger(__name__)


class BotRegistry:
    def __init__(self, bots: list[BotConfig]):
        self._bots = {bot.name: bot for bot in bots}

    @classmethod
    def from_file(cls, path: Path) -> "BotRegistry":
        if not path.exists():
            logger.info(f"No bot configuration at {path}")
            return cls([])

        bots = []
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                bots.append(BotConfig.model_validate_json(line))
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid bot config line in {path}: {e}")
        logger.debug(f"Loaded {len(bots)} bot configs from {path}")
        return cls(bots)

    def names(self) -> list[str]:
        return list(self._bots)

    def get(self, name: str) -> BotConfig:
        bot = self._bots.get(name)
        if bot is None:
            raise NotFoundError(f'Bot "{name}" not found')
        return bot
