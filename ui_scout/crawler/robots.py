"""
Parser for robots.txt: Disallow prefixes of matching groups and Sitemap directives.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Set

from aiohttp import ClientError, ClientSession, ClientTimeout

from ui_scout.logger import get_logger

log = get_logger("crawler")


class RobotsTxtRules:
    """Parser and checker for robots.txt rules."""

    def __init__(self, text: str) -> None:
        self.groups: List[Dict[str, Any]] = []
        self.sitemaps: List[str] = []
        self._parse(text)

    def disallowed_paths(self) -> Set[str]:
        """
        Collect Disallow prefixes of groups addressed to ``*`` or to any bot.

        Groups for other named agents do not restrict us.
        """
        paths: Set[str] = set()
        for group in self.groups:
            if any(self._applies_to_us(agent) for agent in group["agents"]):
                paths.update(rule for directive, rule in group["directives"] if directive == "disallow")
        return paths

    @staticmethod
    def _applies_to_us(agent: str) -> bool:
        agent = agent.lower()
        return agent == "*" or "bot" in agent

    def _parse(self, text: str) -> None:
        """Parse robots.txt content into user-agent groups and directives."""
        current: Optional[Dict[str, Any]] = None
        for line in text.splitlines():
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.strip().lower()
            val = val.strip()
            if key == "sitemap":
                if val:
                    self.sitemaps.append(val)
            elif key == "user-agent":
                # consecutive User-agent lines share one group
                if current is None or current["directives"]:
                    current = {"agents": [], "directives": []}
                    self.groups.append(current)
                current["agents"].append(val)
            elif key in ("allow", "disallow") and current is not None:
                # skip empty disallow (means allow all)
                if key == "disallow" and not val:
                    continue
                current["directives"].append((key, val))


def is_disallowed(path: str, disallowed: Iterable[str]) -> bool:
    """Prefix match of *path* against robots prefixes; a trailing ``*`` is a wildcard."""
    for rule in disallowed:
        prefix = rule[:-1] if rule.endswith("*") else rule
        if path.startswith(prefix):
            return True
    return False


async def fetch_robots(session: ClientSession, origin: str, timeout: float = 10.0) -> Optional[RobotsTxtRules]:
    """Fetch ``<origin>/robots.txt``; any failure means "no rules"."""
    robots_url = f"{origin.rstrip('/')}/robots.txt"
    try:
        async with session.get(robots_url, timeout=ClientTimeout(total=timeout)) as resp:
            if resp.status != 200:
                log.debug("robots.txt %s -> HTTP %s", robots_url, resp.status)
                return None
            return RobotsTxtRules(await resp.text())
    except (ClientError, asyncio.TimeoutError, UnicodeDecodeError) as exc:
        log.warning("Error loading robots.txt %s: %s", robots_url, exc)
        return None
