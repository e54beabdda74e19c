# shared/setup_base.py

import os
import json
from typing import Dict, Any
from redis.asyncio import Redis


class SetupBase:
    """
    Service config loader.

    Responsibilities:
      - Load the Truth document from Redis
      - Extract this service's component definition
      - Inject declared env vars (Truth defaults + shell overrides)
      - Pass through structural (non-env) configuration blocks
    """

    # Structural config blocks preserved verbatim
    STRUCTURAL_KEYS = {
        "dashboard",
        "cors",
        "sample_data",
    }

    def __init__(self, service_name: str, logger=None):
        self.service_name = service_name
        self.logger = logger

    def log(self, message: str, emoji: str = "ℹ️"):
        if self.logger:
            self.logger.info(message, emoji=emoji)

    def _redis(self, url: str) -> Redis:
        return Redis.from_url(url, decode_responses=True)

    async def load_truth(self) -> Dict[str, Any]:
        truth_url = os.getenv("TRUTH_REDIS_URL", "redis://127.0.0.1:6379")
        truth_key = os.getenv("TRUTH_REDIS_KEY", "truth")

        self.log(
            f"loading Truth from Redis (url={truth_url}, key={truth_key})",
            emoji="📥",
        )

        redis = self._redis(truth_url)
        try:
            raw = await redis.get(truth_key)
        finally:
            await redis.aclose()

        if not raw:
            raise RuntimeError(
                f"[setup:{self.service_name}] Truth key '{truth_key}' not found or empty"
            )

        truth = json.loads(raw)
        self.log("Truth loaded successfully", emoji="📄")
        return truth

    def build_config(self, truth: Dict[str, Any]) -> Dict[str, Any]:
        """Resolve this component's config from an already-loaded Truth document."""
        comp = truth.get("components", {}).get(self.service_name)
        if not comp:
            raise RuntimeError(
                f"[setup:{self.service_name}] component missing in Truth"
            )

        self.log("parsing component definition", emoji="🔍")

        access = comp.get("access_points", {})
        cfg: Dict[str, Any] = {
            "service_name": self.service_name,
            "meta": comp.get("meta", {}),
            "inputs": access.get("subscribe_to", []),
            "outputs": access.get("publish_to", []),
            "heartbeat": comp.get("heartbeat", {}),
            "buses": truth.get("buses", {}),
        }

        env_declared = comp.get("env", {})
        if env_declared:
            overridden = 0
            for key, default_value in env_declared.items():
                shell_value = os.getenv(key)
                cfg[key] = shell_value if shell_value is not None else default_value
                if shell_value is not None:
                    overridden += 1

            self.log(
                f"injected {len(env_declared)} env vars into config "
                f"({overridden} overridden by shell)",
                emoji="🔧",
            )

        for key in self.STRUCTURAL_KEYS:
            if key in comp:
                cfg[key] = comp[key]
                self.log(f"loaded structural config '{key}'", emoji="🧩")

        return cfg

    async def load(self) -> Dict[str, Any]:
        truth = await self.load_truth()
        cfg = self.build_config(truth)

        await self.extend_config(cfg)

        self.log(f"setup complete for {self.service_name}", emoji="🎉")
        return cfg

    async def extend_config(self, config: Dict[str, Any]):
        """Hook for subclasses to extend the config dict."""
        pass
