"""Console implementations of the trigger's user-facing capabilities."""

from __future__ import annotations

import asyncio
import logging
import re
import webbrowser
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from .trigger import CopyDecision, Navigator, platform_display_name

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = re.compile(
    r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE
)

Opener = Callable[..., bool]


class RichNotificationSink:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def success(self, message: str) -> None:
        self.console.print(f"[green]✅ {message}[/green]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]❌ {message}[/red]")


class ConsoleManualCopyPrompt:
    """Shows the generated review and waits until the user copied it or closed it."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _ask(self, text: str, platform: str) -> CopyDecision:
        self.console.print(
            Panel(
                text,
                title=f"📝 {platform_display_name(platform)} review generated",
                subtitle="Automatic copy failed, copy the review above by hand",
            )
        )
        try:
            answer = Prompt.ask(
                "Copied it?",
                choices=["copied", "close"],
                default="copied",
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt):
            return CopyDecision.DISMISSED
        return CopyDecision.CONFIRMED if answer == "copied" else CopyDecision.DISMISSED

    async def present(self, text: str, platform: str) -> CopyDecision:
        return await asyncio.to_thread(self._ask, text, platform)


class ReplaceNavigator:
    """Mobile strategy: reuse the current browser window so popups are not blocked."""

    def __init__(self, opener: Opener = webbrowser.open):
        self._open = opener

    def open(self, href: str) -> None:
        self._open(href, new=0)


class NewTabNavigator:
    """Desktop strategy: open the platform in a new tab."""

    def __init__(self, opener: Opener = webbrowser.open):
        self._open = opener

    def open(self, href: str) -> None:
        self._open(href, new=2)


def is_mobile_user_agent(user_agent: Optional[str]) -> bool:
    return bool(user_agent and MOBILE_USER_AGENT.search(user_agent))


def navigator_for_user_agent(
    user_agent: Optional[str], opener: Opener = webbrowser.open
) -> Navigator:
    if is_mobile_user_agent(user_agent):
        logger.debug("Mobile user agent, navigating in place")
        return ReplaceNavigator(opener)
    return NewTabNavigator(opener)
