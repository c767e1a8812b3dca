import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
CellKey = Tuple[str, str]


class ComparisonError(Exception):
    """Base class for comparison failures."""


class ComparisonPreconditionError(ComparisonError):
    """The comparison was refused: no files, no master file or no terms."""


class EmptyTermError(ComparisonError, ValueError):
    """A blank term reached the engine."""


class ComparisonCancelled(ComparisonError):
    """The caller asked to stop between file units."""


@dataclass(frozen=True)
class FileContent:
    id: str
    name: str
    content: str


@dataclass(frozen=True)
class Match:
    line_number: int
    context: str


@dataclass(frozen=True)
class ResultCell:
    found: bool
    matches: Tuple[Match, ...] = ()


@dataclass(frozen=True)
class ComparisonResult:
    """
    Snapshot of one comparison run.

    ``matrix`` holds a cell for every (term, file id) pair, including cells
    where the term was not found. The mapping is read-only.
    """
    terms: Tuple[str, ...]
    files: Tuple[FileContent, ...]
    matrix: Mapping[CellKey, ResultCell] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "matrix", MappingProxyType(dict(self.matrix)))

    def cell(self, term: str, file_id: str) -> ResultCell:
        return self.matrix[(term, file_id)]

    def found_count(self, term: str) -> int:
        return sum(1 for f in self.files if self.matrix[(term, f.id)].found)

    def summary(self) -> List[Dict[str, object]]:
        """One row per term with how many files contain it and the total number of matching lines."""
        rows = []
        for term in self.terms:
            cells = [self.matrix[(term, f.id)] for f in self.files]
            rows.append({
                "term": term,
                "files_found": sum(1 for c in cells if c.found),
                "total_files": len(cells),
                "matching_lines": sum(len(c.matches) for c in cells),
            })
        return rows


def find_matches(term: str, lines: Sequence[str]) -> Tuple[Match, ...]:
    """Lines containing ``term`` case-insensitively, as 1-based (line number, original line) pairs."""
    needle = term.lower()
    return tuple(
        Match(line_number=i, context=line)
        for i, line in enumerate(lines, start=1)
        if needle in line.lower()
    )


def scan_file(terms: Sequence[str], file: FileContent) -> Dict[CellKey, ResultCell]:
    """Compute every cell for one file. Runs as a single unit of work."""
    lines = file.content.split("\n") if file.content else []
    cells = {}
    for term in terms:
        matches = find_matches(term, lines)
        cells[(term, file.id)] = ResultCell(found=bool(matches), matches=matches)
    logger.debug("Scanned %s: %d line(s), %d term(s)", file.name, len(lines), len(terms))
    return cells


def _prepare_terms(terms: Iterable[str]) -> Tuple[str, ...]:
    ordered = tuple(dict.fromkeys(terms))
    for term in ordered:
        if not term or not term.strip():
            raise EmptyTermError("Blank search terms are not allowed; filter them before comparing")
    return ordered


def compare(
    terms: Iterable[str],
    files: Sequence[FileContent],
    progress_callback: Optional[ProgressCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    max_workers: int = 1,
) -> ComparisonResult:
    """
    Search every file, line by line, for every term.

    Each file is scanned as one unit; its cells are committed only once the
    unit has finished, and ``progress_callback(done, total)`` is called after
    each commit. ``should_cancel`` is polled between units.

    Args:
        terms: Non-blank search terms. Duplicates are collapsed.
        files: Files to search, in column order.
        progress_callback: Optional ``(files_done, total_files)`` hook.
        should_cancel: Optional hook; returning True raises ComparisonCancelled.
        max_workers: Thread pool size used to issue file units.

    Returns:
        ComparisonResult: The complete term x file matrix.
    """
    term_list = _prepare_terms(terms)
    file_list = tuple(files)
    total = len(file_list)
    logger.info("Comparing %d term(s) across %d file(s)", len(term_list), total)

    matrix: Dict[CellKey, ResultCell] = {}
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [executor.submit(scan_file, term_list, f) for f in file_list]
        for done, future in enumerate(futures, start=1):
            if should_cancel is not None and should_cancel():
                # Drop units that have not started; at most the running ones finish
                executor.shutdown(wait=True, cancel_futures=True)
                logger.info("Comparison cancelled after %d of %d file(s)", done - 1, total)
                raise ComparisonCancelled(f"Cancelled after {done - 1} of {total} files")
            matrix.update(future.result())
            if progress_callback is not None:
                progress_callback(done, total)

    return ComparisonResult(terms=term_list, files=file_list, matrix=matrix)
