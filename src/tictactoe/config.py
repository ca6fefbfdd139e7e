"""Runtime settings read from ``TICTACTOE_*`` environment variables."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_AI_DELAY = 0.5


def read_ai_delay(environ: Optional[Mapping[str, str]] = None) -> float:
    """Seconds the AI "thinks" before replying; finite and non-negative."""
    env = os.environ if environ is None else environ
    ai_delay = float(env.get("TICTACTOE_AI_DELAY", str(DEFAULT_AI_DELAY)))
    if not math.isfinite(ai_delay) or ai_delay < 0:
        raise ValueError("TICTACTOE_AI_DELAY must be a finite, non-negative number")
    return ai_delay


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    ai_delay: float = DEFAULT_AI_DELAY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("TICTACTOE_HOST", cls.host),
            port=int(env.get("TICTACTOE_PORT", str(cls.port))),
            ai_delay=read_ai_delay(env),
            log_level=env.get("TICTACTOE_LOG_LEVEL", cls.log_level).upper(),
        )
