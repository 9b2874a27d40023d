"""Callback registry correlating script-injection deliveries with waiting calls"""

import asyncio
import random
import re
import string
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import orjson
from loguru import logger

from .config import CALLBACK_PREFIX, CALLBACK_SUFFIX_LENGTH
from .exceptions import MalformedPayloadError

_BASE36 = string.digits + string.ascii_lowercase

# <callbackName>(<jsonPayload>) with an optional trailing semicolon
_INVOCATION_RE = re.compile(r"^\s*([A-Za-z_$][\w$]*)\s*\((.*)\)\s*;?\s*$", re.DOTALL)


@dataclass
class PendingCallback:
    """A registered callback awaiting delivery"""

    name: str
    future: "asyncio.Future[Any]"
    script_url: Optional[str] = None


class CallbackRegistry:
    """
    Maps generated callback names to pending completions.

    Stands in for the global function namespace a browser would use: each
    script-injection attempt registers a fresh name, the loaded script
    "invokes" it by name, and the entry is released on every exit path.
    """

    def __init__(self, prefix: str = CALLBACK_PREFIX):
        self.prefix = prefix
        self._pending: Dict[str, PendingCallback] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, name: str) -> bool:
        return name in self._pending

    @property
    def names(self) -> List[str]:
        return list(self._pending)

    @property
    def injected_scripts(self) -> List[str]:
        """Script URLs still attached to a pending callback"""
        return [p.script_url for p in self._pending.values() if p.script_url]

    def generate_name(self) -> str:
        """Unique callback name: prefix + ms timestamp + random base36 suffix"""
        while True:
            suffix = "".join(random.choices(_BASE36, k=CALLBACK_SUFFIX_LENGTH))
            name = f"{self.prefix}{int(time.time() * 1000)}_{suffix}"
            if name not in self._pending:
                return name

    def register(self) -> PendingCallback:
        name = self.generate_name()
        pending = PendingCallback(name=name, future=asyncio.get_running_loop().create_future())
        self._pending[name] = pending
        logger.debug(f"   Registered callback {name}")
        return pending

    def deliver(self, name: str, payload: Any) -> bool:
        """Invoke a registered callback; False when nothing is waiting on `name`"""
        pending = self._pending.get(name)
        if pending is None or pending.future.done():
            logger.debug(f"   No pending callback named {name}")
            return False
        pending.future.set_result(payload)
        return True

    def release(self, name: str) -> None:
        """Deregister `name` and detach its script; safe to call twice"""
        pending = self._pending.pop(name, None)
        if pending is None:
            return
        if not pending.future.done():
            pending.future.cancel()
        pending.script_url = None
        logger.debug(f"   Released callback {name}")

    @contextmanager
    def reserve(self) -> Iterator[PendingCallback]:
        """Register a callback for the duration of the block"""
        pending = self.register()
        try:
            yield pending
        finally:
            self.release(pending.name)

    def execute_script(self, body: str, expected: str) -> Optional[str]:
        """
        Run a script body loaded for the callback `expected`.

        The payload is delivered only when the body invokes `expected`; a
        script calling any other registered name must not complete someone
        else's request, so its payload is dropped.

        Returns the name of the callback that was invoked, or None when the
        body is not a callback invocation at all.

        Raises:
            MalformedPayloadError: If the invocation argument is not JSON
        """
        invocation = parse_invocation(body)
        if invocation is None:
            return None
        name, payload = invocation
        if name == expected:
            self.deliver(name, payload)
        else:
            logger.warning(f"   Dropping payload for {name}, script was loaded for {expected}")
        return name


def parse_invocation(body: str) -> Optional[Tuple[str, Any]]:
    """Split `name(json)` into its callback name and decoded payload"""
    match = _INVOCATION_RE.match(body)
    if not match:
        return None
    name, argument = match.group(1), match.group(2)
    try:
        return name, orjson.loads(argument)
    except orjson.JSONDecodeError as e:
        raise MalformedPayloadError(f"Callback {name} invoked with invalid JSON: {e}")
