"""Dead element auditor: finds interactive-looking elements with no bound action.

A scan walks a DOM snapshot (HTML parsed with BeautifulSoup), classifies
every element on its own and reports each dead element through the
ActionLogger. Scheduled scans are throttled by a cooldown window.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, Union

from bs4 import BeautifulSoup, Tag

from action_logger.config import LoggerConfig
from action_logger.emitter import ActionLogger
from action_logger.errors import DeadElementsFound

logger = logging.getLogger(__name__)

Snapshot = Union[str, BeautifulSoup]

INTERACTIVE_TAGS = frozenset(["button", "a", "input", "select", "textarea"])
INTERACTIVE_ROLES = frozenset([
    "button", "link", "menuitem", "tab", "checkbox",
    "radio", "switch", "slider", "spinbutton",
])
DECORATIVE_CLASS_FRAGMENTS = (
    "icon", "logo", "badge", "indicator", "dot", "divider", "separator", "spacer",
    "bg-", "text-", "border-", "shadow-", "rounded-", "absolute", "relative", "fixed",
)
MIN_SIZE_PX = 10
SNIPPET_LENGTH = 200
DEAD_REASON = "No click handler detected"


# ----------------------------------------------------------------------
# Element helpers
# ----------------------------------------------------------------------

def inline_style(element: Tag) -> dict[str, str]:
    """Parse the ``style`` attribute into a lowercase property map."""
    style: dict[str, str] = {}
    for declaration in (element.get("style") or "").split(";"):
        if ":" not in declaration:
            continue
        prop, value = declaration.split(":", 1)
        style[prop.strip().lower()] = value.strip().lower()
    return style


def class_names(element: Tag) -> list[str]:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return [c for c in classes if c]


def closest(element: Tag, predicate: Callable[[Tag], bool]) -> Tag | None:
    """The element itself or its nearest ancestor matching *predicate*."""
    current = element
    while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
        if predicate(current):
            return current
        current = current.parent
    return None


def _px(value: str | None) -> float | None:
    if not value:
        return None
    value = value.strip().lower()
    if value.endswith("px"):
        value = value[:-2]
    try:
        return float(value)
    except ValueError:
        return None


def element_path(element: Tag) -> str:
    """CSS-like path from below ``body`` down to *element*."""
    parts: list[str] = []
    current = element
    while (
        isinstance(current, Tag)
        and not isinstance(current, BeautifulSoup)
        and current.name != "body"
    ):
        selector = current.name
        if current.get("id"):
            selector += f"#{current['id']}"
        else:
            classes = class_names(current)
            if classes:
                selector += "." + ".".join(classes)
        parts.insert(0, selector)
        current = current.parent
    return " > ".join(parts)


def truncate_html(html: str, limit: int = SNIPPET_LENGTH) -> str:
    if len(html) > limit:
        return html[:limit] + "..."
    return html


# ----------------------------------------------------------------------
# Action detection strategies
# ----------------------------------------------------------------------

class ActionDetectionStrategy(Protocol):
    def has_action(self, element: Tag) -> bool:
        """Return True when *element* has a detectable action bound to it."""
        ...


class AttributeStrategy:
    """Actions declared in markup: handler attributes, data-action, router links."""

    def has_action(self, element: Tag) -> bool:
        if element.has_attr("onclick") or element.has_attr("data-action"):
            return True
        if closest(element, lambda t: t.has_attr("data-react-router")) is not None:
            return True
        return closest(element, lambda t: t.name == "a" and t.has_attr("href")) is not None


class HandlerRegistryStrategy:
    """Actions declared at runtime by the code that attaches handlers."""

    def __init__(self):
        self._ids: set[str] = set()
        self._selectors: list[str] = []

    def register_id(self, element_id: str) -> None:
        self._ids.add(element_id)

    def register(self, selector: str) -> None:
        if selector not in self._selectors:
            self._selectors.append(selector)

    def clear(self) -> None:
        self._ids.clear()
        self._selectors.clear()

    def has_action(self, element: Tag) -> bool:
        if element.get("id") in self._ids:
            return True
        return any(element.css.match(selector) for selector in self._selectors)


# ----------------------------------------------------------------------
# Scan results
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class DeadElement:
    tag: str
    path: str
    html: str
    reason: str
    classes: tuple[str, ...] = ()


@dataclass
class ScanResult:
    dead_elements: list[DeadElement] = field(default_factory=list)
    total_interactive: int = 0

    @property
    def has_dead_elements(self) -> bool:
        return len(self.dead_elements) > 0


# ----------------------------------------------------------------------
# Auditor
# ----------------------------------------------------------------------

class DeadElementAuditor:
    """Scans DOM snapshots for interactive-looking elements without actions.

    Scheduled scans (after_render, on_route_change) run at most once per
    cooldown window and never while another scan is pending. In CI mode
    scheduled scans are disabled and scan() raises DeadElementsFound on
    findings instead.
    """

    def __init__(
        self,
        action_logger: ActionLogger,
        snapshot_provider: Callable[[], Snapshot] | None = None,
        strategies: list[ActionDetectionStrategy] | None = None,
        config: LoggerConfig | None = None,
        time_func=None,
    ):
        config = config or action_logger.config
        self._logger = action_logger
        self._snapshot_provider = snapshot_provider
        self._strategies = list(strategies) if strategies is not None else [AttributeStrategy()]
        self._cooldown = config.auditor_cooldown
        self._max_reports = config.auditor_max_reports
        self._render_delay = config.auditor_render_delay
        self._route_delay = config.auditor_route_delay
        self._ci = config.ci
        self._development = not config.is_production
        self._time_func = time_func or time.monotonic
        self._last_scan: float | None = None
        self._pending: asyncio.TimerHandle | None = None
        self._scans_run = 0

    @property
    def strategies(self) -> list[ActionDetectionStrategy]:
        return self._strategies

    @property
    def scans_run(self) -> int:
        return self._scans_run

    @property
    def pending(self) -> bool:
        return self._pending is not None

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def is_interactive(self, element: Tag) -> bool:
        if element.name in INTERACTIVE_TAGS:
            return True
        role = element.get("role")
        if role and role.strip().lower() in INTERACTIVE_ROLES:
            return True
        class_text = " ".join(class_names(element)).lower()
        if "button" in class_text or "btn" in class_text:
            return True
        return inline_style(element).get("cursor") == "pointer"

    def should_ignore(self, element: Tag) -> bool:
        if (
            element.has_attr("disabled")
            or element.get("aria-disabled") == "true"
            or "disabled" in class_names(element)
        ):
            return True
        if element.has_attr("data-ignore-dead-scan"):
            return True
        if closest(element, lambda t: t.name == "form") is not None:
            return True
        if element.name == "a" and element.has_attr("href"):
            return True
        if str(element.get("contenteditable", "")).lower() == "true":
            return True

        class_text = " ".join(class_names(element)).lower()
        if any(fragment in class_text for fragment in DECORATIVE_CLASS_FRAGMENTS):
            return True

        style = inline_style(element)
        for dimension in ("width", "height"):
            size = _px(style.get(dimension)) if dimension in style else _px(element.get(dimension))
            if size is not None and size < MIN_SIZE_PX:
                return True

        if (
            element.has_attr("hidden")
            or style.get("display") == "none"
            or style.get("visibility") == "hidden"
            or style.get("opacity") in ("0", "0.0")
        ):
            return True

        overlay = closest(
            element,
            lambda t: t.has_attr("data-overlay") or "overlay" in class_names(t),
        )
        if overlay is not None and inline_style(overlay).get("display") == "none":
            return True

        if closest(element, lambda t: t.name == "svg") is not None:
            return True

        if not element.get_text(strip=True) and element.find(["img", "svg", "icon"]) is None:
            return True

        return False

    def has_action(self, element: Tag) -> bool:
        return any(strategy.has_action(element) for strategy in self._strategies)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _parse(self, snapshot: Snapshot | None) -> BeautifulSoup:
        if snapshot is None:
            if self._snapshot_provider is None:
                raise ValueError("No snapshot given and no snapshot provider configured")
            snapshot = self._snapshot_provider()
        if isinstance(snapshot, BeautifulSoup):
            return snapshot
        return BeautifulSoup(snapshot, "html.parser")

    def scan(self, snapshot: Snapshot | None = None) -> ScanResult:
        """Scan one snapshot and report dead elements through the logger."""
        self._scans_run += 1
        try:
            document = self._parse(snapshot)
            result = self._scan_document(document)
        except Exception:
            logger.warning("Dead element scan failed", exc_info=self._development)
            return ScanResult()

        self._handle_results(result)
        return result

    def _scan_document(self, document: BeautifulSoup) -> ScanResult:
        result = ScanResult()
        for element in document.find_all(True):
            try:
                if not self.is_interactive(element):
                    continue
                result.total_interactive += 1
                if self.should_ignore(element) or self.has_action(element):
                    continue
                dead = DeadElement(
                    tag=element.name,
                    path=element_path(element),
                    html=str(element),
                    reason=DEAD_REASON,
                    classes=tuple(class_names(element)),
                )
            except Exception:
                if self._development:
                    logger.warning("Error classifying element, ignoring it", exc_info=True)
                else:
                    logger.debug("Error classifying element, ignoring it", exc_info=True)
                continue

            result.dead_elements.append(dead)
            if len(result.dead_elements) <= self._max_reports:
                self._logger.log_dead_button(dead.path, truncate_html(dead.html), dead.reason)
        return result

    def _handle_results(self, result: ScanResult) -> None:
        if not result.has_dead_elements:
            logger.info("No dead elements found (%d interactive)", result.total_interactive)
            return

        message = (
            f"Found {len(result.dead_elements)} dead buttons out of "
            f"{result.total_interactive} total interactive elements"
        )
        logger.error("%s", message)
        if self._development:
            for dead in result.dead_elements:
                logger.warning("Dead button: %s (%s) %s", dead.path, dead.reason, dead.html[:100])

        if self._ci:
            raise DeadElementsFound(
                message=f"Build failed: {message}. All interactive elements must have click handlers.",
                result=result,
            )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def after_render(self) -> bool:
        return self.request_scan(self._render_delay)

    def on_route_change(self) -> bool:
        return self.request_scan(self._route_delay)

    def request_scan(self, delay: float) -> bool:
        """Schedule a scan after *delay* seconds. Returns False when throttled."""
        if self._ci or self._pending is not None:
            return False
        now = self._time_func()
        if self._last_scan is not None and now - self._last_scan < self._cooldown:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, scan not scheduled")
            return False
        self._pending = loop.call_later(delay, self._run_scheduled)
        return True

    def _run_scheduled(self) -> None:
        self._pending = None
        self._last_scan = self._time_func()
        self.scan()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
