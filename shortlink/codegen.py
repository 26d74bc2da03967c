"""Short code generation.

Codes are drawn independently and uniformly from the configured alphabet using
nanoid, which reads ``os.urandom`` and masks-and-rejects bytes so every symbol
is equally likely. With the default 62-symbol alphabet and length 7 there are
62^7 (about 3.5 × 10^12) possible codes.

Flow Diagram - generate_unique_code()
=====================================
::
    ┌──────────────┐
    │ draw code    │◄──────────────┐
    └──────┬───────┘               │
           ▼                       │
    ┌──────────────┐   taken and   │
    │ store.exists │── attempts ───┘
    └──────┬───────┘   remain
    free   │
           ▼
    ┌──────────────┐
    │ return code  │
    └──────────────┘

Exhausting ``max_attempts`` raises CodeGenerationError. The existence check is
advisory; the store's unique index still decides on insert.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from nanoid import generate

from shortlink.config import DEFAULT_ALPHABET, Settings
from shortlink.errors import CodeGenerationError
from shortlink.store import ShortLinkStore

__all__ = ["CodeGeneratorConfig", "CodeGenerator", "draw_code", "is_valid_code"]


@dataclass(frozen=True)
class CodeGeneratorConfig:
    length: int = 7
    alphabet: str = DEFAULT_ALPHABET
    max_attempts: int = 10

    def __post_init__(self) -> None:
        if self.length < 1:
            raise ValueError(f"length must be positive, got {self.length!r}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {self.max_attempts!r}")
        if len(set(self.alphabet)) != len(self.alphabet) or len(self.alphabet) < 2:
            raise ValueError("alphabet must hold at least two unique characters")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CodeGeneratorConfig":
        return cls(
            length=settings.SHORT_CODE_LENGTH,
            alphabet=settings.SHORT_CODE_ALPHABET,
            max_attempts=settings.CODE_GENERATION_MAX_ATTEMPTS,
        )


def draw_code(config: CodeGeneratorConfig) -> str:
    return generate(config.alphabet, config.length)


def is_valid_code(code: object, config: CodeGeneratorConfig) -> bool:
    """Cheap shape check: right length, only alphabet characters."""
    if not isinstance(code, str) or len(code) != config.length:
        return False
    return all(c in config.alphabet for c in code)


class CodeGenerator:
    """Produces codes that the store reports as unused."""

    def __init__(
        self,
        store: ShortLinkStore,
        config: CodeGeneratorConfig,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._store = store
        self._config = config
        self._logger = logger or logging.getLogger("shortlink.codegen")

    @property
    def config(self) -> CodeGeneratorConfig:
        return self._config

    async def generate_unique_code(self) -> str:
        """Return a code not currently present in the store.

        Raises:
            CodeGenerationError: If every attempt drew a code already in use.
            StoreUnavailableError: If the existence check cannot be performed.
        """
        for attempt in range(1, self._config.max_attempts + 1):
            code = draw_code(self._config)
            if not await self._store.exists(code):
                return code
            self._logger.info(f"Short code collision on attempt {attempt}: {code}")

        self._logger.error(f"Short code generation exhausted {self._config.max_attempts} attempts")
        raise CodeGenerationError(self._config.max_attempts)
