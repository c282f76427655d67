"""View variants, session state and the immutable view model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from stashnav.stash.models import StashList


class ViewKind(str, Enum):
    """Identifier of the active view."""

    LIST = "list"
    DIFF = "diff"
    FILES = "files"
    SEARCH = "search"
    NEW_STASH = "new_stash"
    CONFIRM = "confirm"


class LineStyle(str, Enum):
    """Display style of a preview line."""

    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"
    META = "meta"
    HUNK = "hunk"
    RENAMED = "renamed"
    MODIFIED = "modified"
    PLACEHOLDER = "placeholder"


class StatusLevel(str, Enum):
    """Severity of a status message."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ConfirmableAction(str, Enum):
    """Destructive actions that require a second keystroke."""

    POP = "pop"
    DROP = "drop"


@dataclass(frozen=True)
class PreviewLine:
    """A styled line of a diff or file preview."""

    style: LineStyle
    text: str


@dataclass(frozen=True)
class ListView:
    """The stash list hub."""

    kind = ViewKind.LIST


@dataclass(frozen=True)
class PreviewView:
    """Shared shape of the diff and file previews.

    Attributes:
        stash_index: Index of the previewed stash when the view was opened.
        commit: Stash commit at that index, used to detect drift.
        request_id: Fetch request whose response this view is waiting for.
        scroll_offset: First visible line.
        loaded: True once the fetch response arrived.
        lines: Rendered content; its length is the content length.
        partial: True when the parser dropped incomplete content.
    """

    stash_index: int
    commit: str
    request_id: int
    scroll_offset: int = 0
    loaded: bool = False
    lines: tuple[PreviewLine, ...] = ()
    partial: bool = False


@dataclass(frozen=True)
class DiffView(PreviewView):
    kind = ViewKind.DIFF


@dataclass(frozen=True)
class FilesView(PreviewView):
    kind = ViewKind.FILES


@dataclass(frozen=True)
class SearchView:
    """Incremental filter entry."""

    query: str = ""
    filtered_indices: tuple[int, ...] = ()

    kind = ViewKind.SEARCH


@dataclass(frozen=True)
class NewStashView:
    """Form for creating a stash."""

    message_buffer: str = ""
    include_untracked: bool = False

    kind = ViewKind.NEW_STASH


@dataclass(frozen=True)
class ConfirmView:
    """Pending confirmation of a destructive action."""

    action: ConfirmableAction
    target_index: int
    commit: str = ""

    kind = ViewKind.CONFIRM


View = ListView | DiffView | FilesView | SearchView | NewStashView | ConfirmView


@dataclass(frozen=True)
class StatusMessage:
    """Status line text visible until ``expires_at`` (a tick number)."""

    text: str
    level: StatusLevel
    expires_at: int


@dataclass(frozen=True)
class BusyOperation:
    """The single mutating operation in flight.

    ``refreshing`` is set once git finished and the follow-up listing is pending;
    the session stays non-interactive until that listing lands.
    """

    request_id: int
    description: str
    refreshing: bool = False


@dataclass
class SessionState:
    """Mutable session state, owned and written only by the controller."""

    view: View = field(default_factory=ListView)
    stashes: StashList = field(default_factory=StashList)
    filter_query: str = ""
    visible: tuple[int, ...] = ()
    selected: int = 0
    status: StatusMessage | None = None
    busy: BusyOperation | None = None
    list_request_id: int | None = None
    last_list_tick: int = 0
    tick: int = 0
    viewport_height: int = 20
    branch: str = ""
    quit_requested: bool = False

    @property
    def pending_confirmation(self) -> ConfirmView | None:
        return self.view if isinstance(self.view, ConfirmView) else None


@dataclass(frozen=True)
class ListRow:
    """A row of the stash list as displayed."""

    index: int
    ref: str
    branch: str
    message: str
    age: str


@dataclass(frozen=True)
class ViewModel:
    """Immutable snapshot the renderer paints from.

    Attributes:
        kind: Active view.
        branch: Checked out branch name.
        total: Number of stashes on the stack.
        rows: Visible list rows in display order.
        selected: Position of the selected row in ``rows``.
        filter_query: Active or in-progress filter text.
        lines: Preview lines for diff and file views.
        scroll_offset: First visible preview line.
        loading: True while a preview fetch is outstanding.
        partial: True when the preview is incomplete.
        title: Preview title (stash reference and message).
        prompt: Text entry line for search and new stash forms.
        dialog: Confirmation question.
        status: Current status message.
        busy: Description of the running mutation, if any.
        hints: Key label and description pairs for the footer.
    """

    kind: ViewKind
    branch: str
    total: int
    rows: tuple[ListRow, ...] = ()
    selected: int | None = None
    filter_query: str = ""
    lines: tuple[PreviewLine, ...] = ()
    scroll_offset: int = 0
    loading: bool = False
    partial: bool = False
    title: str = ""
    prompt: str | None = None
    dialog: str | None = None
    status: StatusMessage | None = None
    busy: str | None = None
    hints: tuple[tuple[str, str], ...] = ()
