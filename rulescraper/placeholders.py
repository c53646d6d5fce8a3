# rulescraper/placeholders.py
"""
Placeholder tokens for directory templates and remap formats.

    {{uuid}}    random UUID4
    {{hex}}     16 random bytes, hex encoded
    {{base64}}  18 random bytes, standard base64
    {{unix}}    current unix time in seconds
    {{index}}   position of the element being produced

Every occurrence draws fresh randomness. The random source and the clock are
injected so resolution is deterministic under test.
"""
import base64
import random
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

TOKEN_UUID = "{{uuid}}"
TOKEN_HEX = "{{hex}}"
TOKEN_BASE64 = "{{base64}}"
TOKEN_UNIX = "{{unix}}"
TOKEN_INDEX = "{{index}}"


def has_placeholders(text: str) -> bool:
    return "{{" in text


class PlaceholderResolver:
    def __init__(self, rng: Optional[random.Random] = None, clock: Optional[Callable[[], float]] = None):
        self.rng = rng if rng is not None else random.SystemRandom()
        self.clock = clock if clock is not None else time.time

    def _random_bytes(self, n: int) -> bytes:
        return self.rng.getrandbits(n * 8).to_bytes(n, "big")

    def _uuid(self) -> str:
        return str(uuid.UUID(bytes=self._random_bytes(16), version=4))

    def _replace_each(self, text: str, token: str, produce: Callable[[], str]) -> str:
        pieces = text.split(token)
        if len(pieces) == 1:
            return text
        out = [pieces[0]]
        for piece in pieces[1:]:
            out.append(produce())
            out.append(piece)
        return "".join(out)

    def resolve(self, text: str, index: int = 0) -> str:
        """Substitute every token inside ``text``."""
        if not has_placeholders(text):
            return text
        text = self._replace_each(text, TOKEN_UUID, self._uuid)
        text = self._replace_each(text, TOKEN_HEX, lambda: self._random_bytes(16).hex())
        text = self._replace_each(text, TOKEN_BASE64,
                                  lambda: base64.b64encode(self._random_bytes(18)).decode("ascii"))
        text = self._replace_each(text, TOKEN_UNIX, lambda: str(int(self.clock())))
        text = text.replace(TOKEN_INDEX, str(index))
        return text

    def resolve_value(self, value: Any, index: int = 0) -> Any:
        """
        Like ``resolve`` for format values, but a value that is exactly one
        token yields a typed result: ints for unix/index, ISO-8601 for time.
        """
        if not isinstance(value, str):
            return value
        token = value.strip().lower()
        if token == TOKEN_UNIX:
            return int(self.clock())
        if token == "{{time}}":
            return datetime.fromtimestamp(self.clock(), tz=timezone.utc).isoformat()
        if token == TOKEN_INDEX:
            return index
        if token == "{{index+1}}":
            return index + 1
        return self.resolve(value, index)

    def copy_template(self, template: Any, index: int = 0) -> Any:
        """Deep copy of a format template with placeholders resolved for one element."""
        if isinstance(template, dict):
            return {k: self.copy_template(v, index) for k, v in template.items()}
        if isinstance(template, list):
            return [self.copy_template(v, index) for v in template]
        return self.resolve_value(template, index)
