"""Interactive session controller for the stash browser."""

from __future__ import annotations

from dataclasses import replace

from stashnav.config import UIConfig
from stashnav.controller.keys import Action, KeyEvent, Keymap
from stashnav.controller.state import (
    BusyOperation,
    ConfirmableAction,
    ConfirmView,
    DiffView,
    FilesView,
    LineStyle,
    ListRow,
    ListView,
    NewStashView,
    PreviewLine,
    PreviewView,
    SearchView,
    SessionState,
    StatusLevel,
    StatusMessage,
    ViewModel,
)
from stashnav.controller.worker import AdapterResponse, AdapterWorker, RequestKind
from stashnav.diffs.models import ChangeType, DiffDocument, DiffLineKind, FileSummary
from stashnav.diffs.parser import document_lines
from stashnav.search.fuzzy import filter_indices
from stashnav.stash.models import StashEntry, StashList
from stashnav.util.logging import get_logger
from stashnav.version_control.base import StashCommandError, StashFailure

_LOGGER = get_logger("stashnav.controller.session")

_DIFF_STYLES: dict[DiffLineKind, LineStyle] = {
    DiffLineKind.ADDED: LineStyle.ADDED,
    DiffLineKind.REMOVED: LineStyle.REMOVED,
    DiffLineKind.CONTEXT: LineStyle.CONTEXT,
    DiffLineKind.META_HEADER: LineStyle.META,
}

_CHANGE_LABELS: dict[ChangeType, tuple[str, LineStyle]] = {
    ChangeType.ADDED: ("A", LineStyle.ADDED),
    ChangeType.MODIFIED: ("M", LineStyle.MODIFIED),
    ChangeType.DELETED: ("D", LineStyle.REMOVED),
    ChangeType.RENAMED: ("R", LineStyle.RENAMED),
}

_FAILURE_HINTS: dict[StashFailure, str] = {
    StashFailure.INDEX_GONE: "stash no longer exists",
    StashFailure.APPLY_CONFLICT: "conflicts left in the working tree; resolve them manually",
    StashFailure.NOTHING_TO_STASH: "no local changes to save",
    StashFailure.UNPARSEABLE: "could not read git output",
    StashFailure.NOT_A_REPOSITORY: "not inside a git repository",
    StashFailure.EXECUTABLE_MISSING: "git executable not found",
    StashFailure.EXEC_FAILED: "git command failed",
}

_LIST_HINTS: tuple[tuple[Action, str], ...] = (
    (Action.UP, "up"),
    (Action.DOWN, "down"),
    (Action.VIEW_DIFF, "diff"),
    (Action.VIEW_FILES, "files"),
    (Action.APPLY, "apply"),
    (Action.POP, "pop"),
    (Action.DROP, "drop"),
    (Action.NEW_STASH, "new"),
    (Action.SEARCH, "search"),
    (Action.QUIT, "quit"),
)

_PREVIEW_HINTS: tuple[tuple[Action, str], ...] = (
    (Action.SCROLL_DOWN, "scroll"),
    (Action.PAGE_DOWN, "page down"),
    (Action.PAGE_UP, "page up"),
    (Action.BACK, "back"),
)


class StashController:
    """Owns the session state and drives every view transition.

    All methods are called from the UI thread. Adapter calls go through the
    worker; their responses are applied in :meth:`process_results`.
    """

    def __init__(
        self,
        worker: AdapterWorker,
        stashes: StashList,
        *,
        keymap: Keymap | None = None,
        ui: UIConfig | None = None,
        branch: str = "",
    ) -> None:
        """Initialize the controller with the startup listing.

        Args:
            worker: Worker that runs adapter calls.
            stashes: Listing fetched before the session started.
            keymap: Key bindings; defaults to the built-in bindings.
            ui: Session settings.
            branch: Checked out branch for the header.
        """

        self._worker = worker
        self._keymap = keymap or Keymap()
        self._ui = ui or UIConfig()
        self._state = SessionState(stashes=stashes, visible=stashes.indices, branch=branch)
        self._revision = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def revision(self) -> int:
        """Counter bumped on every state change, used to skip redundant redraws."""

        return self._revision

    @property
    def quit_requested(self) -> bool:
        return self._state.quit_requested

    @property
    def finished(self) -> bool:
        """Return True once quit was requested and no mutation is running."""

        return self._state.quit_requested and self._state.busy is None

    def set_viewport(self, height: int) -> None:
        """Record the number of preview lines the renderer can show."""

        height = max(1, height)
        if height == self._state.viewport_height:
            return
        self._state.viewport_height = height
        view = self._state.view
        if isinstance(view, PreviewView):
            offset = self._clamp_scroll(view, view.scroll_offset)
            self._state.view = replace(view, scroll_offset=offset)
        self._touch()

    def handle_key(self, key: KeyEvent) -> None:
        """Dispatch a key press to the handler of the active view."""

        if self._state.busy is not None:
            self._handle_busy_key(key)
        else:
            view = self._state.view
            if isinstance(view, ListView):
                self._handle_list_key(key)
            elif isinstance(view, PreviewView):
                self._handle_preview_key(view, key)
            elif isinstance(view, SearchView):
                self._handle_search_key(view, key)
            elif isinstance(view, NewStashView):
                self._handle_new_stash_key(view, key)
            elif isinstance(view, ConfirmView):
                self._handle_confirm_key(view, key)
        self._touch()

    def process_results(self) -> int:
        """Apply every response the worker has delivered; return how many."""

        responses = self._worker.poll()
        for response in responses:
            self._apply_response(response)
        if responses:
            self._touch()
        return len(responses)

    def tick(self) -> None:
        """Advance the session clock by one poll interval."""

        state = self._state
        state.tick += 1
        if state.status is not None and state.tick >= state.status.expires_at:
            state.status = None
            self._touch()
        interval = self._ui.refresh_interval_ticks
        if (
            interval > 0
            and state.busy is None
            and state.list_request_id is None
            and state.tick - state.last_list_tick >= interval
        ):
            self.refresh()

    def refresh(self) -> None:
        """Request a fresh listing, superseding any listing still in flight."""

        request = self._worker.submit(RequestKind.LIST)
        self._state.list_request_id = request.request_id
        self._state.last_list_tick = self._state.tick

    def view_model(self) -> ViewModel:
        """Return an immutable snapshot of what should be on screen."""

        state = self._state
        view = state.view
        busy = state.busy.description if state.busy is not None else None
        base = ViewModel(
            kind=view.kind,
            branch=state.branch,
            total=len(state.stashes),
            filter_query=state.filter_query,
            status=state.status,
            busy=busy,
        )
        if isinstance(view, PreviewView):
            entry = state.stashes.get(view.stash_index)
            title = f"stash@{{{view.stash_index}}}"
            if entry is not None:
                title = f"{title}  {entry.branch}: {entry.message}"
            return replace(
                base,
                lines=view.lines,
                scroll_offset=view.scroll_offset,
                loading=not view.loaded,
                partial=view.partial,
                title=title,
                hints=self._hints(_PREVIEW_HINTS),
            )

        order = view.filtered_indices if isinstance(view, SearchView) else state.visible
        rows = tuple(_row(entry) for entry in self._entries(order))
        selected = min(state.selected, len(rows) - 1) if rows else None
        model = replace(base, rows=rows, selected=selected, hints=self._hints(_LIST_HINTS))
        if isinstance(view, SearchView):
            return replace(
                model,
                filter_query=view.query,
                prompt=f"/{view.query}",
                hints=(("enter", "apply filter"), (self._keymap.label(Action.BACK), "cancel")),
            )
        if isinstance(view, NewStashView):
            untracked = "x" if view.include_untracked else " "
            return replace(
                model,
                prompt=f"Message: {view.message_buffer}",
                dialog=f"[{untracked}] include untracked files",
                hints=(
                    ("enter", "create"),
                    (self._keymap.label(Action.TOGGLE_UNTRACKED), "toggle untracked"),
                    (self._keymap.label(Action.BACK), "cancel"),
                ),
            )
        if isinstance(view, ConfirmView):
            verb = "Pop" if view.action is ConfirmableAction.POP else "Drop"
            confirm = self._keymap.label(Action.CONFIRM)
            return replace(
                model,
                dialog=f"{verb} stash@{{{view.target_index}}}? Press {confirm} to confirm, "
                "any other key to cancel.",
                hints=((confirm, "confirm"), ("any", "cancel")),
            )
        return model

    def _handle_busy_key(self, key: KeyEvent) -> None:
        busy = self._state.busy
        assert busy is not None
        if self._keymap.matches(key, Action.QUIT):
            self._state.quit_requested = True
            self._set_status(f"Quitting after {busy.description} finishes.", StatusLevel.INFO)
        elif self._keymap.matches(key, Action.BACK):
            self._set_status(f"Waiting for {busy.description} to finish.", StatusLevel.INFO)

    def _handle_list_key(self, key: KeyEvent) -> None:
        keymap = self._keymap
        state = self._state
        if keymap.matches(key, Action.QUIT):
            state.quit_requested = True
        elif keymap.matches(key, Action.UP):
            self._move_selection(-1, len(state.visible))
        elif keymap.matches(key, Action.DOWN):
            self._move_selection(1, len(state.visible))
        elif keymap.matches(key, Action.VIEW_DIFF) or keymap.matches(key, Action.SELECT):
            self._open_preview(RequestKind.DIFF)
        elif keymap.matches(key, Action.VIEW_FILES):
            self._open_preview(RequestKind.FILES)
        elif keymap.matches(key, Action.APPLY):
            entry = self._selected_entry()
            if entry is not None:
                self._start_mutation(RequestKind.APPLY, f"apply of {entry.ref}", index=entry.index)
        elif keymap.matches(key, Action.POP):
            self._request_confirmation(ConfirmableAction.POP)
        elif keymap.matches(key, Action.DROP):
            self._request_confirmation(ConfirmableAction.DROP)
        elif keymap.matches(key, Action.NEW_STASH):
            state.view = NewStashView(include_untracked=self._ui.default_include_untracked)
        elif keymap.matches(key, Action.SEARCH):
            query = state.filter_query
            state.view = SearchView(query=query, filtered_indices=self._filter(query))
            state.selected = 0
        elif keymap.matches(key, Action.CLEAR_FILTER) or keymap.matches(key, Action.BACK):
            if state.filter_query:
                self._apply_filter("")
                self._set_status("Filter cleared.", StatusLevel.INFO)
        elif keymap.matches(key, Action.REFRESH):
            self.refresh()

    def _handle_preview_key(self, view: PreviewView, key: KeyEvent) -> None:
        keymap = self._keymap
        step = 0
        if keymap.matches(key, Action.BACK) or keymap.matches(key, Action.QUIT):
            self._state.view = ListView()
            return
        if keymap.matches(key, Action.SCROLL_UP):
            step = -1
        elif keymap.matches(key, Action.SCROLL_DOWN):
            step = 1
        elif keymap.matches(key, Action.PAGE_UP):
            step = -self._page_step()
        elif keymap.matches(key, Action.PAGE_DOWN):
            step = self._page_step()
        if step:
            offset = self._clamp_scroll(view, view.scroll_offset + step)
            self._state.view = replace(view, scroll_offset=offset)

    def _handle_search_key(self, view: SearchView, key: KeyEvent) -> None:
        state = self._state
        if key.char is not None and key.char.isprintable():
            query = view.query + key.char
        elif key.name == "backspace":
            query = view.query[:-1]
        elif key.name == "enter":
            highlighted = state.selected
            self._apply_filter(view.query)
            if state.visible == view.filtered_indices:
                state.selected = highlighted
            state.view = ListView()
            self._clamp_selection()
            return
        elif self._keymap.matches(key, Action.BACK):
            self._apply_filter("")
            state.view = ListView()
            return
        elif self._keymap.matches(key, Action.UP):
            self._move_selection(-1, len(view.filtered_indices))
            return
        elif self._keymap.matches(key, Action.DOWN):
            self._move_selection(1, len(view.filtered_indices))
            return
        else:
            return
        state.view = SearchView(query=query, filtered_indices=self._filter(query))
        state.selected = 0

    def _handle_new_stash_key(self, view: NewStashView, key: KeyEvent) -> None:
        state = self._state
        if key.char is not None and key.char.isprintable():
            state.view = replace(view, message_buffer=view.message_buffer + key.char)
        elif key.name == "backspace":
            state.view = replace(view, message_buffer=view.message_buffer[:-1])
        elif self._keymap.matches(key, Action.TOGGLE_UNTRACKED):
            state.view = replace(view, include_untracked=not view.include_untracked)
        elif key.name == "enter":
            message = view.message_buffer.strip()
            if not message and self._ui.require_stash_message:
                self._set_status("A stash message is required.", StatusLevel.WARNING)
                return
            state.view = ListView()
            self._start_mutation(
                RequestKind.CREATE,
                "stash push",
                message=message or None,
                include_untracked=view.include_untracked,
            )
        elif self._keymap.matches(key, Action.BACK):
            state.view = ListView()

    def _handle_confirm_key(self, view: ConfirmView, key: KeyEvent) -> None:
        state = self._state
        state.view = ListView()
        if not self._keymap.matches(key, Action.CONFIRM):
            self._set_status("Cancelled.", StatusLevel.INFO)
            return
        entry = state.stashes.resolve(view.target_index, view.commit)
        if entry is None:
            self._set_status(
                f"stash@{{{view.target_index}}}: {_FAILURE_HINTS[StashFailure.INDEX_GONE]}.",
                StatusLevel.ERROR,
            )
            self.refresh()
            return
        if view.action is ConfirmableAction.POP:
            self._start_mutation(RequestKind.POP, f"pop of {entry.ref}", index=entry.index)
        else:
            self._start_mutation(RequestKind.DROP, f"drop of {entry.ref}", index=entry.index)

    def _apply_response(self, response: AdapterResponse) -> None:
        kind = response.request.kind
        if kind is RequestKind.LIST:
            self._on_list(response)
        elif kind in {RequestKind.DIFF, RequestKind.FILES}:
            self._on_preview(response)
        else:
            self._on_mutation(response)

    def _on_list(self, response: AdapterResponse) -> None:
        state = self._state
        request_id = response.request.request_id
        if request_id != state.list_request_id:
            _LOGGER.debug("Dropping superseded listing %s", request_id)
            return
        state.list_request_id = None
        if state.busy is not None and state.busy.refreshing:
            state.busy = None
        if response.error is not None:
            self._report_failure("refresh", response.error)
            return
        stashes = response.value
        if not isinstance(stashes, StashList):
            self._set_status("Listing returned no data.", StatusLevel.ERROR)
            return
        self._install_list(stashes)

    def _on_preview(self, response: AdapterResponse) -> None:
        state = self._state
        view = state.view
        request_id = response.request.request_id
        if not isinstance(view, PreviewView) or view.request_id != request_id:
            _LOGGER.debug("Dropping stale %s response %s", response.request.kind.value, request_id)
            return
        if response.error is not None:
            state.view = ListView()
            self._report_failure(f"stash@{{{view.stash_index}}}", response.error)
            self.refresh()
            return
        if isinstance(response.value, DiffDocument):
            lines = _diff_preview(response.value)
            partial = response.value.partial
        elif isinstance(response.value, FileSummary):
            lines = _files_preview(response.value)
            partial = response.value.partial
        else:
            state.view = ListView()
            self._set_status("Preview returned no data.", StatusLevel.ERROR)
            return
        loaded = replace(view, loaded=True, lines=lines, partial=partial, scroll_offset=0)
        state.view = loaded
        if partial:
            self._set_status("Partial content: git output was incomplete.", StatusLevel.WARNING)

    def _on_mutation(self, response: AdapterResponse) -> None:
        state = self._state
        request = response.request
        busy = state.busy
        if busy is None or busy.request_id != request.request_id:
            _LOGGER.warning("Unexpected mutation response %s", request.request_id)
        if response.error is not None:
            label = f"stash@{{{request.index}}}" if request.index is not None else "stash push"
            self._report_failure(label, response.error)
        else:
            self._set_status(_success_text(request.kind, request.index), StatusLevel.SUCCESS)
        if not isinstance(state.view, ListView):
            state.view = ListView()
        self.refresh()
        if busy is not None and busy.request_id == request.request_id:
            state.busy = replace(busy, refreshing=True)

    def _install_list(self, stashes: StashList) -> None:
        state = self._state
        state.stashes = stashes
        state.visible = self._filter(state.filter_query)
        view = state.view
        if isinstance(view, PreviewView | ConfirmView):
            index = view.stash_index if isinstance(view, PreviewView) else view.target_index
            if stashes.resolve(index, view.commit) is None:
                state.view = ListView()
                self._set_status(
                    f"stash@{{{index}}}: {_FAILURE_HINTS[StashFailure.INDEX_GONE]}.",
                    StatusLevel.ERROR,
                )
        elif isinstance(view, SearchView):
            state.view = replace(view, filtered_indices=self._filter(view.query))
        self._clamp_selection()

    def _open_preview(self, kind: RequestKind) -> None:
        entry = self._selected_entry()
        if entry is None:
            return
        request = self._worker.submit(kind, index=entry.index)
        view_type = DiffView if kind is RequestKind.DIFF else FilesView
        self._state.view = view_type(
            stash_index=entry.index,
            commit=entry.commit,
            request_id=request.request_id,
        )

    def _request_confirmation(self, action: ConfirmableAction) -> None:
        entry = self._selected_entry()
        if entry is None:
            return
        self._state.view = ConfirmView(action=action, target_index=entry.index, commit=entry.commit)

    def _start_mutation(
        self,
        kind: RequestKind,
        description: str,
        *,
        index: int | None = None,
        message: str | None = None,
        include_untracked: bool = False,
    ) -> None:
        request = self._worker.submit(
            kind,
            index=index,
            message=message,
            include_untracked=include_untracked,
        )
        self._state.busy = BusyOperation(request_id=request.request_id, description=description)
        _LOGGER.info("Started %s (request %s)", description, request.request_id)

    def _report_failure(self, subject: str, error: StashCommandError) -> None:
        hint = _FAILURE_HINTS.get(error.kind, "git command failed")
        detail = error.message.strip().splitlines()[0] if error.message.strip() else ""
        text = f"{subject}: {hint}"
        if detail and error.kind in {StashFailure.EXEC_FAILED, StashFailure.APPLY_CONFLICT}:
            text = f"{text} ({detail})"
        self._set_status(text, StatusLevel.ERROR)

    def _set_status(self, text: str, level: StatusLevel) -> None:
        self._state.status = StatusMessage(
            text=text,
            level=level,
            expires_at=self._state.tick + self._ui.status_ttl_ticks,
        )

    def _apply_filter(self, query: str) -> None:
        state = self._state
        state.filter_query = query if query.strip() else ""
        state.visible = self._filter(state.filter_query)
        state.selected = 0

    def _filter(self, query: str) -> tuple[int, ...]:
        return filter_indices(query, self._state.stashes)

    def _entries(self, order: tuple[int, ...]) -> list[StashEntry]:
        stashes = self._state.stashes
        return [entry for entry in (stashes.get(index) for index in order) if entry is not None]

    def _selected_entry(self) -> StashEntry | None:
        state = self._state
        if not state.visible:
            self._set_status("No stash selected.", StatusLevel.INFO)
            return None
        position = min(state.selected, len(state.visible) - 1)
        return state.stashes.get(state.visible[position])

    def _move_selection(self, delta: int, length: int) -> None:
        if length == 0:
            self._state.selected = 0
            return
        self._state.selected = max(0, min(length - 1, self._state.selected + delta))

    def _clamp_selection(self) -> None:
        state = self._state
        view = state.view
        length = len(view.filtered_indices) if isinstance(view, SearchView) else len(state.visible)
        state.selected = max(0, min(state.selected, length - 1)) if length else 0

    def _page_step(self) -> int:
        return max(1, self._state.viewport_height - 1)

    def _clamp_scroll(self, view: PreviewView, offset: int) -> int:
        limit = max(0, len(view.lines) - self._state.viewport_height)
        return max(0, min(offset, limit))

    def _hints(self, actions: tuple[tuple[Action, str], ...]) -> tuple[tuple[str, str], ...]:
        return tuple((self._keymap.label(action), label) for action, label in actions)

    def _touch(self) -> None:
        self._revision += 1


def _row(entry: StashEntry) -> ListRow:
    return ListRow(
        index=entry.index,
        ref=entry.ref,
        branch=entry.branch,
        message=entry.message,
        age=entry.relative_age,
    )


def _success_text(kind: RequestKind, index: int | None) -> str:
    ref = f"stash@{{{index}}}"
    if kind is RequestKind.APPLY:
        return f"Applied {ref}."
    if kind is RequestKind.POP:
        return f"Popped {ref}."
    if kind is RequestKind.DROP:
        return f"Dropped {ref}."
    return "Created stash."


def _diff_preview(document: DiffDocument) -> tuple[PreviewLine, ...]:
    lines: list[PreviewLine] = []
    for line in document_lines(document):
        style = _DIFF_STYLES[line.kind]
        if line.kind is DiffLineKind.META_HEADER:
            if line.text.startswith("@@"):
                style = LineStyle.HUNK
            elif line.text.startswith("["):
                style = LineStyle.PLACEHOLDER
        lines.append(PreviewLine(style, line.text))
    if not lines:
        lines.append(PreviewLine(LineStyle.PLACEHOLDER, "[no changes]"))
    return tuple(lines)


def _files_preview(summary: FileSummary) -> tuple[PreviewLine, ...]:
    count = len(summary.changes)
    noun = "file" if count == 1 else "files"
    lines = [
        PreviewLine(
            LineStyle.META,
            f"{count} {noun} changed, {summary.total_insertions} insertions(+), "
            f"{summary.total_deletions} deletions(-)",
        )
    ]
    for change in summary.changes:
        code, style = _CHANGE_LABELS[change.change_type]
        if change.raw_code is not None:
            code = f"{code}?{change.raw_code}"
        path = change.path
        if change.old_path is not None:
            path = f"{change.old_path} -> {change.path}"
        lines.append(
            PreviewLine(style, f"{code:<4} {path}  +{change.insertions} -{change.deletions}")
        )
    return tuple(lines)
