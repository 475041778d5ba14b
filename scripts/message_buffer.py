import re
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Tuple

HEADER_NAME_RE = re.compile(r'^([^\s:]+):')


class MessageBuffer:
    """
    The text of a displayed message together with its view state.

    Only the narrowed region [start, end) is accessible; ranges listed in
    `invisible` are hidden from display. `contents()` returns what the
    user actually sees, and that is what gets exported.
    """
    def __init__(self, text: str, mode: str, start: int = 0, end: Optional[int] = None):
        self.text = text
        self.mode = mode
        self.start = 0
        self.end = len(text)
        self.invisible: List[Tuple[int, int]] = []
        # header fields this view shows; None means the mode's default
        self.visible_headers: Optional[List[str]] = None
        self.narrow(start, len(text) if end is None else end)

    def __repr__(self):
        return f"MessageBuffer(mode={self.mode!r}, start={self.start}, end={self.end}, size={len(self.text)})"

    def narrow(self, start: int, end: int):
        if not 0 <= start <= end <= len(self.text):
            raise ValueError(f"Invalid region [{start}, {end}) for buffer of size {len(self.text)}")
        self.start = start
        self.end = end

    def widen(self):
        self.start = 0
        self.end = len(self.text)

    def restriction(self) -> Tuple[int, int]:
        return self.start, self.end

    @contextmanager
    def saved_restriction(self):
        start, end = self.restriction()
        try:
            yield self
        finally:
            self.narrow(start, end)

    def replace(self, start: int, end: int, new_text: str):
        """Replaces text[start:end], shifting the narrowed region to match."""
        delta = len(new_text) - (end - start)
        self.text = self.text[:start] + new_text + self.text[end:]
        if self.start >= end:
            self.start += delta
        if self.end >= end:
            self.end += delta
        elif self.end > start:
            self.end = start + len(new_text)
        # Edited text loses its hidden state.
        self.invisible = [(s + delta, e + delta) if s >= end else (s, e)
                          for s, e in self.invisible if e <= start or s >= end]

    def line_end(self, pos: int) -> int:
        """Position just past the newline ending the line at pos."""
        nl = self.text.find('\n', pos)
        return len(self.text) if nl == -1 else nl + 1

    def contents(self) -> str:
        pieces = []
        pos = self.start
        for s, e in sorted(self.invisible):
            s, e = max(s, self.start), min(e, self.end)
            if s >= e or e <= pos:
                continue
            if s > pos:
                pieces.append(self.text[pos:s])
            pos = max(pos, e)
        if pos < self.end:
            pieces.append(self.text[pos:self.end])
        return ''.join(pieces)


def split_message(raw: str) -> Tuple[str, str]:
    """
    Splits a raw message at the first blank line.

    Returns (header_block, body); every header line in header_block keeps
    its trailing newline, and the separating blank line belongs to neither.
    """
    raw = raw.replace('\r\n', '\n')
    if raw.startswith('\n'):
        return '', raw[1:]
    sep = raw.find('\n\n')
    if sep == -1:
        if not raw.endswith('\n'):
            raw += '\n'
        return raw, ''
    return raw[:sep + 1], raw[sep + 2:]


def split_header_fields(header_block: str) -> List[Tuple[str, str]]:
    """Returns [(name, raw_text)], folding continuation lines into their field."""
    fields = []
    for line in header_block.splitlines(keepends=True):
        if line[:1] in (' ', '\t') and fields:
            name, text = fields[-1]
            fields[-1] = (name, text + line)
            continue
        match = HEADER_NAME_RE.match(line)
        fields.append((match.group(1) if match else '', line))
    return fields


def header_matches(name: str, visible_headers) -> bool:
    return name.lower() in {h.lower() for h in visible_headers}


def read_message_file(file_path) -> str:
    """Reads a message file, tolerating stray 8-bit bytes."""
    path = Path(file_path).expanduser()
    with open(path, 'rb') as fp:
        data = fp.read()
    return data.decode('utf-8', errors='surrogateescape')
