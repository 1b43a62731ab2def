import logging
import json
import math
import time
from pathlib import Path
from typing import Optional


class CooldownActiveError(Exception):
    """Raised when an API call is attempted before the cooldown has elapsed."""
    def __init__(self, remaining_seconds: int):
        super().__init__(f"API called too quickly. Please wait {remaining_seconds} more seconds.")
        self.remaining_seconds = remaining_seconds


class ApiCooldown:
    """
    Rate-limits LLM calls across runs by persisting the last call time
    (epoch milliseconds) in a small JSON state file.
    """
    def __init__(self, state_path: Path, cooldown_seconds: int = 60):
        self.state_path = Path(state_path)
        self.cooldown_ms = cooldown_seconds * 1000
        self.logger = logging.getLogger(__name__)

    def last_call_ms(self) -> int:
        if not self.state_path.exists():
            return 0
        try:
            data = json.loads(self.state_path.read_text(encoding='utf-8'))
            return int(data.get('lastApiCallTime', 0))
        except (ValueError, TypeError, AttributeError) as e:
            self.logger.warning(f"Ignoring unreadable cooldown state {self.state_path}: {e}")
            return 0

    def remaining_seconds(self, now_ms: Optional[int] = None) -> int:
        now_ms = _now_ms() if now_ms is None else now_ms
        elapsed = now_ms - self.last_call_ms()
        if elapsed >= self.cooldown_ms:
            return 0
        return math.ceil((self.cooldown_ms - elapsed) / 1000)

    def check(self, now_ms: Optional[int] = None):
        remaining = self.remaining_seconds(now_ms)
        if remaining > 0:
            raise CooldownActiveError(remaining)

    def mark(self, now_ms: Optional[int] = None):
        now_ms = _now_ms() if now_ms is None else now_ms
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(json.dumps({'lastApiCallTime': now_ms}), encoding='utf-8')
        self.logger.debug(f"Recorded API call at {now_ms}")


def _now_ms() -> int:
    return int(time.time() * 1000)
