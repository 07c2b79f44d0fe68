"""Configuration for the autonomous mode controller.

Simple configuration loader from environment variables (and a ``.env`` file,
if present), plus the config record the controller is constructed with.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

DEFAULT_BASE_URL = "http://127.0.0.1:11434"
DEFAULT_MODEL = "llama3.2:latest"
DEFAULT_GRACE_PERIOD_MS = 5000
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant running in offline mode. Be concise and helpful."
)
DISCOVERY_TIMEOUT = 5.0


@dataclass
class AutonomousModeConfig:
    """Autonomous mode configuration.

    ``model`` is the only field changed after construction, and only by
    discovery when the configured model is not served locally.
    """
    model: str = DEFAULT_MODEL
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS  # Wait before going autonomous
    enabled: bool = True
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    base_url: str = DEFAULT_BASE_URL  # Local Ollama server
    discovery_timeout: float = DISCOVERY_TIMEOUT
    chat_timeout: float = 120.0

    def __post_init__(self):
        if self.grace_period_ms < 0:
            raise ValueError(f"grace_period_ms must be non-negative, got {self.grace_period_ms}")
        self.base_url = self.base_url.rstrip("/")

    @property
    def grace_period(self) -> float:
        """Grace period in seconds."""
        return self.grace_period_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides) -> "AutonomousModeConfig":
        """Build a config from environment variables, then apply overrides."""
        config = load_config()
        values = {
            "model": config["MODEL"],
            "grace_period_ms": config["GRACE_PERIOD_MS"],
            "enabled": config["ENABLED"],
            "system_prompt": config["SYSTEM_PROMPT"],
            "base_url": config["OLLAMA_HOST"],
            "chat_timeout": config["CHAT_TIMEOUT"],
        }
        values.update(overrides)
        return cls(**values)


# =============================================================================
# Environment Variable Configuration
# =============================================================================


@lru_cache(maxsize=1)
def load_config() -> dict:
    """
    Load application configuration from environment variables.

    Returns:
        dict with configuration values
    """
    load_dotenv()
    return {
        # Local model server
        "OLLAMA_HOST": os.getenv("OLLAMA_HOST", DEFAULT_BASE_URL),
        "MODEL": os.getenv("AUTONOMOUS_MODEL", DEFAULT_MODEL),

        # Debounce between losing the gateway and switching to the local model
        "GRACE_PERIOD_MS": int(os.getenv("AUTONOMOUS_GRACE_PERIOD_MS", str(DEFAULT_GRACE_PERIOD_MS))),
        "ENABLED": os.getenv("AUTONOMOUS_ENABLED", "true").lower() == "true",
        "SYSTEM_PROMPT": os.getenv("AUTONOMOUS_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        "CHAT_TIMEOUT": float(os.getenv("AUTONOMOUS_CHAT_TIMEOUT", "120.0")),
    }
