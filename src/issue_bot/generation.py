"""
Turn a collected bundle into validated issues through the completion stream.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from typing import Any, Protocol

from . import render
from .config import Settings
from .errors import CompletionError, ImageFetchError, IssueValidationError
from .images import ImageData, allowlisted, fetch_image
from .llm import build_system_prompt, build_user_content
from .logs import log_event
from .models import Bundle, GeneratedIssue
from .transport import Transport
from .validator import validate_completion

logger = logging.getLogger(__name__)

_END = object()


class Completion(Protocol):
    def stream(self, system: str, content: list[dict[str, Any]]) -> Iterator[str]: ...


class UpdateThrottle:
    """Fires once at least `step` characters arrived since the last render."""

    def __init__(self, step: int) -> None:
        self.step = max(1, step)
        self.last = 0

    def __call__(self, length: int) -> bool:
        if length - self.last >= self.step:
            self.last = length
            return True
        return False


class IssueGenerator:
    def __init__(
        self,
        transport: Transport,
        completion: Completion,
        settings: Settings,
        fetch: Callable[[str, int], ImageData] = fetch_image,
        throttle_factory: Callable[[], Callable[[int], bool]] | None = None,
    ) -> None:
        self.transport = transport
        self.completion = completion
        self.settings = settings
        self.fetch = fetch
        self.throttle_factory = throttle_factory or (
            lambda: UpdateThrottle(settings.stream_update_chars)
        )

    async def resolve_images(self, urls: list[str], channel: Any) -> list[ImageData]:
        resolved: list[ImageData] = []
        for url in urls:
            try:
                if not allowlisted(url, self.settings.image_allowed_hosts):
                    raise ImageFetchError(f"host not allowed for {url}")
                resolved.append(await asyncio.to_thread(self.fetch, url, self.settings.image_max_bytes))
            except ImageFetchError as e:
                log_event(logger, "image_skipped", level=logging.WARNING, url=url, error=str(e))
                await self.transport.send(channel, render.skipped_image(str(e)))
        return resolved

    async def generate(self, bundle: Bundle, channel: Any) -> list[GeneratedIssue]:
        t0 = time.time()
        log_event(
            logger, "generation_started", texts=len(bundle.texts), images=len(bundle.images)
        )
        images = await self.resolve_images(list(bundle.images), channel)
        content = build_user_content(list(bundle.texts), images)

        status = await self.transport.send(channel, "Starting generation...")
        should_render = self.throttle_factory()
        buffer = ""
        try:
            tokens = iter(
                await asyncio.to_thread(self.completion.stream, build_system_prompt(), content)
            )
            while True:
                token = await asyncio.to_thread(next, tokens, _END)
                if token is _END:
                    break
                buffer += token
                if should_render(len(buffer)):
                    await self.transport.edit(status, content=render.generating_text(buffer))
        except Exception as e:
            logger.exception("AI stream processing failed")
            await self.transport.edit(status, content="❌ Generation failed!")
            if isinstance(e, CompletionError):
                raise
            raise CompletionError(f"completion stream failed: {e}") from e

        await self.transport.edit(status, content=render.generated_text(buffer))
        try:
            issues = validate_completion(buffer)
        except IssueValidationError:
            await self.transport.edit(status, content=render.invalid_text(buffer))
            raise
        log_event(
            logger,
            "generation_done",
            issues=len(issues),
            images=len(images),
            out_chars=len(buffer),
            ms=int((time.time() - t0) * 1000),
        )
        return issues
