import logging
import mimetypes
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from lexicompare.comparison import (
    ComparisonPreconditionError,
    ComparisonResult,
    FileContent,
    ProgressCallback,
    compare,
)
from lexicompare.extractors import extract_content
from lexicompare.tokenizer import tokenize, working_terms

logger = logging.getLogger(__name__)


class ContentState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class FileReadError:
    """An upload that could not be read; it is left out of the session."""
    name: str
    reason: str


@dataclass
class UploadedFile:
    """
    One uploaded document.

    Its decoded text is computed at most once: the state moves from UNLOADED
    to LOADED, or to FAILED when extraction stopped early (the partial text is
    still kept and used).
    """
    id: str
    name: str
    mime_type: str
    data: bytes = field(repr=False)
    state: ContentState = ContentState.UNLOADED
    error: Optional[str] = None
    _content: str = field(default="", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def load_content(self) -> str:
        with self._lock:
            if self.state is ContentState.UNLOADED:
                result = extract_content(self.data, self.mime_type)
                self._content = result.text
                self.error = result.error
                self.state = ContentState.LOADED if result.ok else ContentState.FAILED
            return self._content

    @property
    def content(self) -> Optional[str]:
        """Cached text, or None while the file is still unloaded."""
        if self.state is ContentState.UNLOADED:
            return None
        return self._content

    def as_file_content(self) -> FileContent:
        return FileContent(id=self.id, name=self.name, content=self.load_content())


def guess_mime_type(name: str, declared: Optional[str]) -> str:
    if declared:
        return declared
    guessed, _ = mimetypes.guess_type(name)
    return guessed or ""


def _read_upload(upload) -> bytes:
    if hasattr(upload, "getvalue"):
        return upload.getvalue()
    data = upload.read()
    if hasattr(upload, "seek"):
        upload.seek(0)
    return data


class ComparisonSession:
    """
    Files, master selection, term curation and the latest comparison result.

    Changing the file set or the master discards the current result.
    """

    def __init__(self, include_master: bool = True, max_workers: int = 1):
        self.include_master = include_master
        self.max_workers = max_workers
        self.files: List[UploadedFile] = []
        self.master_file_id: Optional[str] = None
        self.extracted_terms: List[str] = []
        self.selected_terms: List[str] = []
        self.manual_terms: str = ""
        self.result: Optional[ComparisonResult] = None

    # ---------------- Files ----------------
    def _new_file_id(self, name: str) -> str:
        base = f"{name}-{int(time.time() * 1000)}"
        existing = {f.id for f in self.files}
        file_id, n = base, 1
        while file_id in existing:
            file_id = f"{base}-{n}"
            n += 1
        return file_id

    def add_file(self, name: str, data: bytes, mime_type: Optional[str] = None) -> UploadedFile:
        uploaded = UploadedFile(
            id=self._new_file_id(name),
            name=name,
            mime_type=guess_mime_type(name, mime_type),
            data=data,
        )
        self.files.append(uploaded)
        self.result = None
        logger.info("Added %s (%s, %d bytes)", name, uploaded.mime_type or "unknown type", len(data))
        return uploaded

    def add_files(self, uploads: Iterable) -> List[FileReadError]:
        """
        Add uploads exposing ``name``, ``type`` and ``getvalue()`` (or ``read()``).

        Returns:
            List[FileReadError]: Uploads that could not be read and were skipped.
        """
        failures = []
        for upload in uploads:
            name = getattr(upload, "name", "") or "untitled"
            try:
                data = _read_upload(upload)
            except (OSError, ValueError) as e:
                logger.warning("Could not read %s: %s", name, e)
                failures.append(FileReadError(name=name, reason=str(e)))
                continue
            self.add_file(name, data, getattr(upload, "type", None))
        return failures

    def get_file(self, file_id: str) -> UploadedFile:
        for f in self.files:
            if f.id == file_id:
                return f
        raise KeyError(file_id)

    def remove_file(self, file_id: str) -> None:
        self.files = [f for f in self.files if f.id != file_id]
        if file_id == self.master_file_id:
            self._clear_master()
        self.result = None

    # ---------------- Master & terms ----------------
    @property
    def master_file(self) -> Optional[UploadedFile]:
        if self.master_file_id is None:
            return None
        return self.get_file(self.master_file_id)

    def _clear_master(self) -> None:
        self.master_file_id = None
        self.extracted_terms = []
        self.selected_terms = []

    def set_master(self, file_id: Optional[str]) -> List[str]:
        """Make a file the master, extract its terms and select all of them."""
        self.result = None
        if file_id is None:
            self._clear_master()
            return []
        master = self.get_file(file_id)
        self.master_file_id = master.id
        self.extracted_terms = tokenize(master.load_content(), master.mime_type)
        self.selected_terms = list(self.extracted_terms)
        logger.info("Extracted %d term(s) from master %s", len(self.extracted_terms), master.name)
        return self.extracted_terms

    def select_terms(self, terms: Iterable[str]) -> None:
        known = set(self.extracted_terms)
        self.selected_terms = [t for t in dict.fromkeys(terms) if t in known]

    def select_all(self) -> None:
        self.selected_terms = list(self.extracted_terms)

    def deselect_all(self) -> None:
        self.selected_terms = []

    @property
    def terms(self) -> List[str]:
        """The working term set, derived from the selection and the manual input."""
        return working_terms(self.selected_terms, self.manual_terms)

    # ---------------- Comparison ----------------
    def comparison_files(self) -> List[UploadedFile]:
        if self.include_master:
            return list(self.files)
        return [f for f in self.files if f.id != self.master_file_id]

    def run_comparison(self, progress_callback: Optional[ProgressCallback] = None) -> ComparisonResult:
        terms = self.terms
        if not self.files:
            raise ComparisonPreconditionError("Upload at least one file before comparing.")
        if self.master_file_id is None:
            raise ComparisonPreconditionError("Select a master file before comparing.")
        if not terms:
            raise ComparisonPreconditionError("Select or type at least one term to compare.")
        targets = self.comparison_files()
        if not targets:
            raise ComparisonPreconditionError("There are no files to compare against the master.")

        self.result = None
        result = compare(
            terms,
            [f.as_file_content() for f in targets],
            progress_callback=progress_callback,
            max_workers=self.max_workers,
        )
        self.result = result
        return result
