"""Resolution state machine behind ``j``.

Stages, in order:
    1. ``-``           -> previous directory of this session
    2. no terms        -> interactive selection over the database plus
                          registry projects not yet visited
    3. terms           -> best frecency match
    4. one term, miss  -> path guess (./term, ~/term, ~/.term)
    5.                 -> project registry lookup
    6.                 -> NotFound

A successful jump is recorded through the change tracker so directories
reached with ``j`` are reinforced like any other visit.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from jnav.core.console import get_logger
from jnav.core.external import Launcher, ProjectRegistry
from jnav.core.matching import matches
from jnav.core.paths import canonicalize, display_path
from jnav.core.ranker import Candidate, Ranker
from jnav.core.result import Err, InvalidSelectionError, JNavError, NotFoundError
from jnav.core.selector import SelectorBackend
from jnav.core.tracker import ChangeTracker

logger = get_logger(__name__)

PREVIOUS_TOKEN = "-"


class NavState(Enum):
    JUMPED = "jumped"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class SessionState:
    """Per-shell-session state, passed explicitly instead of shell globals."""

    cwd: Path
    previous_dir: Path | None = None
    home: Path = field(default_factory=Path.home)


@dataclass(frozen=True)
class NavigationRequest:
    terms: tuple[str, ...] = ()
    previous: bool = False
    open_external: bool = False
    verbose: bool = False

    @classmethod
    def from_args(
        cls, args: Sequence[str], *, open_external: bool = False, verbose: bool = False
    ) -> NavigationRequest:
        """Split the previous-directory token from positional query terms."""
        previous = PREVIOUS_TOKEN in args
        terms = tuple(arg for arg in args if arg != PREVIOUS_TOKEN and arg.strip())
        return cls(terms=terms, previous=previous, open_external=open_external, verbose=verbose)


@dataclass(frozen=True)
class NavigationOutcome:
    state: NavState
    target: Path | None = None
    stage: str | None = None
    error: JNavError | None = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is not NavState.FAILED


class Navigator:
    """Turns a query (or no query) into a target directory."""

    def __init__(
        self,
        ranker: Ranker,
        tracker: ChangeTracker,
        selector: SelectorBackend,
        registry: ProjectRegistry,
        launcher: Launcher,
        *,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self._ranker = ranker
        self._tracker = tracker
        self._selector = selector
        self._registry = registry
        self._launcher = launcher
        self._echo = echo

    def _stage(self, request: NavigationRequest, message: str) -> None:
        logger.debug(message)
        if request.verbose and self._echo is not None:
            self._echo(message)

    def navigate(self, request: NavigationRequest, session: SessionState) -> NavigationOutcome:
        if request.previous:
            return self._previous(request, session)
        if not request.terms:
            return self._interactive(request, session)
        return self._query(request, session)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _previous(self, request: NavigationRequest, session: SessionState) -> NavigationOutcome:
        previous = session.previous_dir
        if previous is None or not previous.is_dir():
            return NavigationOutcome(NavState.FAILED, error=NotFoundError("No previous directory"))
        self._stage(request, f"Jumping to previous directory {display_path(previous, session.home)}")
        return self._jump(request, session, previous, stage="previous")

    def _interactive(self, request: NavigationRequest, session: SessionState) -> NavigationOutcome:
        candidates = self._ranker.query(request.terms, cwd=session.cwd)
        candidates.extend(self._registry_candidates(request, session, candidates))
        if not candidates:
            return NavigationOutcome(
                NavState.FAILED,
                error=NotFoundError(
                    "No directories found. Start navigating with cd to build your frecency "
                    "database, or add projects with: gitx clone <url>"
                ),
            )

        try:
            chosen = self._selector.select(candidates)
        except InvalidSelectionError as exc:
            return NavigationOutcome(NavState.FAILED, error=exc)

        if chosen is None:
            return NavigationOutcome(NavState.CANCELLED)
        return self._jump(request, session, chosen, stage="interactive")

    def _registry_candidates(
        self, request: NavigationRequest, session: SessionState, ranked: Sequence[Candidate]
    ) -> list[Candidate]:
        """Registry projects not already ranked, sorted by path, scored zero."""
        seen = {candidate.path for candidate in ranked}
        current = str(session.cwd)
        extra = {
            str(project)
            for project in self._registry.list_projects()
            if str(project) not in seen
            and str(project) != current
            and matches(str(project), request.terms)
        }
        return [Candidate(score=0.0, path=path, last_access=0) for path in sorted(extra)]

    def _query(self, request: NavigationRequest, session: SessionState) -> NavigationOutcome:
        terms = list(request.terms)
        self._stage(request, f"Searching frecency database ({self._ranker.store.path})...")
        candidates = self._ranker.query(terms, cwd=session.cwd)

        if candidates:
            best = Path(candidates[0].path)
            self._stage(
                request,
                f"Found {len(candidates)} match(es) in database, best: "
                f"{display_path(best, session.home)}",
            )
            return self._jump(request, session, best, stage="database")

        # Fallbacks only apply for single-keyword queries.
        if len(terms) == 1:
            term = terms[0]
            self._stage(request, "No match in database, trying path resolution...")
            resolved = resolve_path_guess(term, session)
            if resolved is not None:
                self._stage(request, f"Resolved path: {display_path(resolved, session.home)}")
                return self._jump(request, session, resolved, stage="path")

            self._stage(request, f'Trying project registry lookup for "{term}"...')
            project = self._registry.lookup(term)
            if project is not None:
                self._stage(request, f"Found project: {display_path(project, session.home)}")
                return self._jump(request, session, project, stage="registry")

        joined = " ".join(terms)
        self._stage(request, f"No matching directory found for: {joined}")
        return NavigationOutcome(
            NavState.FAILED,
            error=NotFoundError(f"No matching directory: {joined}"),
        )

    def _jump(
        self, request: NavigationRequest, session: SessionState, target: Path, *, stage: str
    ) -> NavigationOutcome:
        session.previous_dir = session.cwd
        self._tracker.on_directory_change(target)

        warnings: list[str] = []
        if request.open_external:
            result = self._launcher.open(target)
            if isinstance(result, Err):
                warnings.append(result.error.message)

        return NavigationOutcome(
            NavState.JUMPED, target=target, stage=stage, warnings=tuple(warnings)
        )


def resolve_path_guess(term: str, session: SessionState) -> Path | None:
    """Treat ``term`` as a directory path.

    Tries, in order: relative to the current directory, under home, and as a
    dot-directory under home (``jsh`` -> ``~/.jsh``).
    """
    candidates = [session.cwd / term, session.home / term]
    if not term.startswith("."):
        candidates.append(session.home / f".{term}")

    for candidate in candidates:
        try:
            if candidate.is_dir():
                return canonicalize(candidate)
        except OSError:
            continue
    return None


__all__ = [
    "PREVIOUS_TOKEN",
    "NavState",
    "NavigationOutcome",
    "NavigationRequest",
    "Navigator",
    "SessionState",
    "resolve_path_guess",
]
