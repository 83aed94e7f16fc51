"""Data models for decoded screens, telemetry and session results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_MODEL = "gemini-3-pro-preview"
DEFAULT_PROVIDER = "openrouter"


@dataclass(frozen=True)
class Screen:
    """A completed, named unit of generated UI markup.

    Screens are frozen once emitted. ``grid_col``/``grid_row`` are only set
    when the screen name carried a ``[col,row]`` suffix.
    """

    name: str
    html: str
    is_edit: bool = False
    grid_col: int | None = None
    grid_row: int | None = None
    is_root: bool = False
    recovered: bool = False

    def to_dict(self) -> dict:
        """Serialize to dictionary (camelCase keys, as the UI consumes them)."""
        data: dict = {
            "name": self.name,
            "html": self.html,
            "isEdit": self.is_edit,
            "isRoot": self.is_root,
        }
        if self.grid_col is not None:
            data["gridCol"] = self.grid_col
        if self.grid_row is not None:
            data["gridRow"] = self.grid_row
        if self.recovered:
            data["recovered"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Screen:
        """Deserialize from dictionary."""
        return cls(
            name=data["name"],
            html=data["html"],
            is_edit=data.get("isEdit", False),
            grid_col=data.get("gridCol"),
            grid_row=data.get("gridRow"),
            is_root=data.get("isRoot", False),
            recovered=data.get("recovered", False),
        )


@dataclass(frozen=True)
class UsageData:
    """Token usage reported by the server after generation."""

    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0
    total_tokens: int = 0
    model: str = DEFAULT_MODEL
    provider: str = DEFAULT_PROVIDER

    @classmethod
    def from_dict(cls, data: dict) -> UsageData:
        """Build from the wire ``usage`` object, defaulting missing fields."""
        input_tokens = data.get("inputTokens") or 0
        output_tokens = data.get("outputTokens") or 0
        return cls(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cached_tokens=data.get("cachedTokens") or 0,
            total_tokens=data.get("totalTokens") or input_tokens + output_tokens,
            model=data.get("model") or DEFAULT_MODEL,
            provider=data.get("provider") or DEFAULT_PROVIDER,
        )

    def to_dict(self) -> dict:
        """Serialize to the wire ``usage`` shape."""
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cachedTokens": self.cached_tokens,
            "totalTokens": self.total_tokens,
            "model": self.model,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class QuotaExceededData:
    """Structured quota refusal, kept apart from generic errors."""

    message: str
    code: str = "QUOTA_EXCEEDED"
    plan: str = "free"
    messages_remaining: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> QuotaExceededData:
        """Build from an error response body."""
        remaining = data.get("messagesRemaining")
        return cls(
            message=data.get("error") or "You've used all your messages",
            code=data.get("code", "QUOTA_EXCEEDED"),
            plan=data.get("plan") or "free",
            messages_remaining=remaining if remaining is not None else 0,
        )


class ParseMode(Enum):
    """Decoder state."""

    IDLE = "idle"
    IN_SCREEN = "in_screen"


@dataclass
class ScreenAccumulator:
    """The in-progress screen: decoded name fields plus the HTML so far.

    ``html`` is a single running string; ``append`` extends it in place.
    """

    name: str
    is_edit: bool
    grid_col: int | None = None
    grid_row: int | None = None
    is_root: bool = False
    html: str = ""

    def append(self, text: str) -> None:
        if text:
            self.html += text

    def freeze(self, recovered: bool = False) -> Screen:
        """Return the immutable, trimmed screen."""
        return Screen(
            name=self.name,
            html=self.html.strip(),
            is_edit=self.is_edit,
            grid_col=self.grid_col,
            grid_row=self.grid_row,
            is_root=self.is_root,
            recovered=recovered,
        )


@dataclass
class ParseState:
    """Per-session mutable parse state.

    ``current`` is None exactly when ``mode`` is IDLE. ``pending`` holds text
    that has not been matched against any tag yet.
    """

    mode: ParseMode = ParseMode.IDLE
    pending: str = ""
    current: ScreenAccumulator | None = None
    emitted: list[Screen] = field(default_factory=list)

    def open(self, accumulator: ScreenAccumulator) -> None:
        self.mode = ParseMode.IN_SCREEN
        self.current = accumulator

    def close(self) -> None:
        self.mode = ParseMode.IDLE
        self.current = None


class SessionStatus(Enum):
    """Terminal status of a streaming session."""

    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"
    QUOTA_EXCEEDED = "quota_exceeded"


@dataclass
class SessionResult:
    """Everything a session produced, accumulated by the controller."""

    screens: list[Screen] = field(default_factory=list)
    raw_output: str = ""
    status: SessionStatus = SessionStatus.RUNNING
    error: str | None = None
    quota: QuotaExceededData | None = None
    messages: list[str] = field(default_factory=list)
    project_name: str | None = None
    project_icon: str | None = None
    usage: list[UsageData] = field(default_factory=list)
    messages_remaining: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not SessionStatus.RUNNING
