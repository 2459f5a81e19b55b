"""Trigger orchestrator bound to one landing-page link.

Activation runs fetch -> prompt -> generate -> deliver -> navigate:
- idle -> generating -> delivering -> navigating -> navigated
- idle -> generating -> navigating -> navigated   (any generation failure)
- idle -> navigating -> navigated                 (plain link)

Navigation always happens. At most one activation is in flight per trigger;
activations arriving meanwhile are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol

from .errors import AllModelsFailed, ClipboardUnavailable, NoPlaceIdentifier, NoReviewsFound
from .models import GenerationRequest, GenerationResult, LinkTarget, Platform, ReviewRecord
from .prompt import PLATFORM_POLICIES

logger = logging.getLogger(__name__)


class TriggerState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    DELIVERING = "delivering"
    NAVIGATING = "navigating"
    NAVIGATED = "navigated"


class CopyDecision(str, Enum):
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"


# --- Capabilities ------------------------------------------------------------

class ReviewSource(Protocol):
    async def fetch(self, place_id: str) -> List[ReviewRecord]: ...


class ReviewGenerator(Protocol):
    async def generate(self, request: GenerationRequest) -> GenerationResult: ...


class NotificationSink(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class ManualCopyPrompt(Protocol):
    async def present(self, text: str, platform: str) -> CopyDecision: ...


class Navigator(Protocol):
    def open(self, href: str) -> None: ...


CopyFn = Callable[[str], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class TriggerOutcome:
    state: TriggerState
    result: Optional[GenerationResult] = None
    error: Optional[str] = None
    copied: bool = False
    decision: Optional[CopyDecision] = None


def platform_display_name(platform: Optional[str]) -> str:
    policy = PLATFORM_POLICIES.get((platform or "").lower())
    return policy.display_name if policy else (platform or "")


def wants_generation(target: LinkTarget) -> bool:
    """Only known platforms with a business or place id get a generated review."""
    if target.is_email or Platform.parse(target.platform) is None:
        return False
    return bool(target.business_name or target.place_id)


async def generate_for_place(
    source: ReviewSource,
    generator: ReviewGenerator,
    *,
    platform: str,
    place_id: Optional[str],
    business_name: Optional[str] = None,
    business_type: Optional[str] = None,
) -> GenerationResult:
    """Fetch a place's reviews and generate one new review from them."""
    if not place_id:
        raise NoPlaceIdentifier()

    reviews = await source.fetch(place_id)
    if not reviews:
        raise NoReviewsFound()
    logger.info("Found %d reviews for %s", len(reviews), business_name or "business")

    request = GenerationRequest(
        platform=platform,
        business_name=business_name,
        business_type=business_type,
        existing_reviews=list(reviews),
    )
    return await generator.generate(request)


class ReviewTrigger:
    """Stateful orchestrator for a single link."""

    def __init__(
        self,
        target: LinkTarget,
        *,
        source: ReviewSource,
        generator: ReviewGenerator,
        copy: CopyFn,
        notifier: NotificationSink,
        manual_copy: ManualCopyPrompt,
        navigator: Navigator,
        default_place_id: Optional[str] = None,
        business_type: Optional[str] = None,
        success_delay: float = 1.0,
        error_delay: float = 0.5,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.target = target
        self.state = TriggerState.IDLE
        self._source = source
        self._generator = generator
        self._copy = copy
        self._notifier = notifier
        self._manual_copy = manual_copy
        self._navigator = navigator
        self._default_place_id = default_place_id
        self._business_type = business_type
        self._success_delay = success_delay
        self._error_delay = error_delay
        self._sleep = sleep
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def activate(self) -> Optional[TriggerOutcome]:
        """
        Handle one user activation.

        Returns None when the activation was dropped because another one is
        still in flight.
        """
        if self._in_flight:
            logger.info("Already generating review, dropping activation")
            return None

        if not wants_generation(self.target):
            self._navigate()
            return TriggerOutcome(state=self.state)

        self._in_flight = True
        outcome = TriggerOutcome(state=TriggerState.GENERATING)
        try:
            delay = await self._generate_and_deliver(outcome)
            if delay:
                await self._sleep(delay)
        finally:
            self._in_flight = False
            self._navigate()

        outcome.state = self.state
        return outcome

    async def _generate_and_deliver(self, outcome: TriggerOutcome) -> float:
        """Run generation and delivery; return the pause before navigating."""
        target = self.target
        platform = target.platform or ""
        self.state = TriggerState.GENERATING
        logger.info(
            "Generating AI review for %s on %s", target.business_name or "business", platform
        )
        try:
            result = await generate_for_place(
                self._source,
                self._generator,
                platform=platform,
                place_id=target.place_id or self._default_place_id,
                business_name=target.business_name,
                business_type=self._business_type,
            )
        except Exception as exc:
            logger.error("Failed to generate AI review: %s", exc)
            outcome.error = str(exc)
            self._notifier.error(self._failure_message(platform, exc))
            return self._error_delay

        outcome.result = result
        self.state = TriggerState.DELIVERING
        try:
            await self._copy(result.generated_text)
        except ClipboardUnavailable as exc:
            logger.warning("Auto copy failed, showing manual copy prompt: %s", exc)
            return await self._manual_fallback(outcome, result.generated_text, platform)
        except Exception as exc:
            logger.error("Failed to deliver AI review: %s", exc)
            outcome.error = str(exc)
            self._notifier.error(self._failure_message(platform, exc))
            return self._error_delay

        outcome.copied = True
        self._notifier.success(
            f"{platform_display_name(platform)} review generated and copied to your clipboard!"
        )
        return self._success_delay

    async def _manual_fallback(
        self, outcome: TriggerOutcome, text: str, platform: str
    ) -> float:
        try:
            outcome.decision = await self._manual_copy.present(text, platform)
        except Exception as exc:
            logger.error("Manual copy prompt failed: %s", exc)
            outcome.error = str(exc)
            return 0.0
        outcome.copied = outcome.decision is CopyDecision.CONFIRMED
        return 0.0

    def _failure_message(self, platform: str, exc: Exception) -> str:
        reason = str(exc) or type(exc).__name__
        if isinstance(exc, AllModelsFailed):
            reason = f"all models failed ({', '.join(exc.models_attempted)})"
        return f"Failed to generate {platform_display_name(platform)} review: {reason}"

    def _navigate(self) -> None:
        self.state = TriggerState.NAVIGATING
        logger.info("Opening %s", self.target.href)
        self._navigator.open(self.target.href)
        self.state = TriggerState.NAVIGATED
