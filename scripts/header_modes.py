"""
Display modes for a message buffer and the header exposure adapters.

Each mode knows how its mail reader lays a message out (`present`), and
how to temporarily show the full header block before an export (`expose`)
and take that back afterwards (`restore`). `expose` returns an opaque
token for `restore`; None means nothing was changed.

Modes are looked up by the buffer's mode identifier through the
EXPOSE_HEADERS and RESTORE_HEADERS tables. A mode that is not registered
leaves the buffer alone.
"""
import logging
import re
import time
from email.utils import parseaddr, parsedate_to_datetime
from typing import Dict, Callable, Iterable, Optional

from message_buffer import MessageBuffer, split_message, split_header_fields, header_matches

DEFAULT_VISIBLE_HEADERS = [
    "From", "To", "Cc", "Subject", "Date", "Newsgroups", "Followup-To",
]


class HeaderMode:
    mode_id = None

    def __init__(self, visible_headers: Optional[Iterable[str]] = None):
        self.visible_headers = list(visible_headers or DEFAULT_VISIBLE_HEADERS)

    def present(self, raw_message: str, visible_headers: Optional[Iterable[str]] = None) -> MessageBuffer:
        raise NotImplementedError

    def visible_for(self, buffer: MessageBuffer):
        return self.visible_headers if buffer.visible_headers is None else buffer.visible_headers

    def prune(self, header_block: str, visible_headers) -> str:
        """Keeps only the visible header fields, in their original order."""
        return ''.join(raw for name, raw in split_header_fields(header_block)
                       if header_matches(name, visible_headers))

    def expose(self, buffer: MessageBuffer):
        return None

    def restore(self, buffer: MessageBuffer, token):
        pass


class NullMode(HeaderMode):
    """Used for buffers whose mode has no adapter; headers stay as they are."""
    mode_id = ''


# --- Linear-store mailbox -------------------------------------------------

RECORD_START_RE = re.compile(r'^From ', re.MULTILINE)


class MboxMode(HeaderMode):
    """
    A message stored in an mbox file.

    The record begins with the envelope `From ` line. Like VM, the viewer
    moves the visible headers to the bottom of the header block and
    narrows past everything above them.
    """
    mode_id = 'mbox'

    def envelope_line(self, header_block: str) -> str:
        fields = dict((name.lower(), raw) for name, raw in split_header_fields(header_block))
        sender = parseaddr(fields.get('from', '').partition(':')[2].strip())[1] or 'MAILER-DAEMON'
        try:
            date = parsedate_to_datetime(fields.get('date', '').partition(':')[2].strip())
            stamp = time.asctime(date.timetuple())
        except (TypeError, ValueError):
            stamp = time.asctime()
        return f"From {sender} {stamp}\n"

    def present(self, raw_message: str, visible_headers: Optional[Iterable[str]] = None) -> MessageBuffer:
        visible = list(self.visible_headers if visible_headers is None else visible_headers)
        header_block, body = split_message(raw_message)
        if header_block.startswith('From '):
            envelope, _, header_block = header_block.partition('\n')
            envelope += '\n'
        else:
            envelope = self.envelope_line(header_block)

        fields = split_header_fields(header_block)
        hidden = ''.join(raw for name, raw in fields if not header_matches(name, visible))
        shown = ''.join(raw for name, raw in fields if header_matches(name, visible))
        text = envelope + hidden + shown + '\n' + body
        buffer = MessageBuffer(text, self.mode_id, start=len(envelope) + len(hidden))
        buffer.visible_headers = visible
        return buffer

    def expose(self, buffer: MessageBuffer):
        start, end = buffer.restriction()
        buffer.widen()
        header_end = buffer.text.find('\n\n', max(start - 1, 0))
        if header_end == -1:
            logging.info("No end of headers found in mbox record; leaving headers alone.")
            buffer.narrow(start, end)
            return None

        record_start = None
        for record_start in RECORD_START_RE.finditer(buffer.text, 0, header_end + 1):
            pass
        if record_start is None:
            logging.info("No record start line found in mbox buffer; leaving headers alone.")
            buffer.narrow(start, end)
            return None

        buffer.narrow(buffer.line_end(record_start.start()), end)
        return start

    def restore(self, buffer: MessageBuffer, token):
        if token is None:
            return
        buffer.narrow(token, buffer.end)


# --- Sequential-record store ----------------------------------------------

BABYL_RECORD_START = '\f\n'
BABYL_EOOH = '*** EOOH ***\n'
BABYL_RECORD_END = '\x1f'


class BabylMode(HeaderMode):
    """
    A message in a Babyl file, as Rmail shows it.

    Each record keeps the original headers above the EOOH line and the
    displayed copy below it. The first character of the attribute line is
    '1' while the displayed headers are pruned and '0' while they are full.
    """
    mode_id = 'babyl'

    def present(self, raw_message: str, visible_headers: Optional[Iterable[str]] = None) -> MessageBuffer:
        visible = list(self.visible_headers if visible_headers is None else visible_headers)
        header_block, body = split_message(raw_message)
        text = (BABYL_RECORD_START + '1,,\n' + header_block + BABYL_EOOH
                + self.prune(header_block, visible) + '\n' + body + BABYL_RECORD_END)
        buffer = MessageBuffer(text, self.mode_id)
        buffer.visible_headers = visible
        buffer.narrow(*self._message_region(buffer, 0))
        return buffer

    def _record_bounds(self, buffer: MessageBuffer, pos: int):
        record = buffer.text.rfind(BABYL_RECORD_START, 0, pos + len(BABYL_RECORD_START))
        if record == -1:
            raise ValueError("Buffer position is not inside a Babyl record")
        attributes = record + len(BABYL_RECORD_START)
        eooh = buffer.text.find(BABYL_EOOH, attributes)
        if eooh == -1:
            raise ValueError("Babyl record has no EOOH line")
        return attributes, eooh

    def _message_region(self, buffer: MessageBuffer, pos: int):
        attributes, eooh = self._record_bounds(buffer, pos)
        start = eooh + len(BABYL_EOOH)
        end = buffer.text.find(BABYL_RECORD_END, start)
        return start, len(buffer.text) if end == -1 else end

    def headers_shown(self, buffer: MessageBuffer) -> bool:
        pos = buffer.start
        with buffer.saved_restriction():
            buffer.widen()
            attributes, _ = self._record_bounds(buffer, pos)
            return buffer.text[attributes] == '0'

    def toggle_headers(self, buffer: MessageBuffer):
        """Switches the displayed headers between pruned and full."""
        pos = buffer.start
        buffer.widen()
        attributes, eooh = self._record_bounds(buffer, pos)
        original = buffer.text[buffer.line_end(attributes):eooh]
        shown_start = eooh + len(BABYL_EOOH)
        blank = buffer.text.find('\n\n', shown_start - 1)
        shown_end = len(buffer.text) if blank == -1 else blank + 1

        pruned = buffer.text[attributes] == '1'
        displayed = original if pruned else self.prune(original, self.visible_for(buffer))
        buffer.replace(shown_start, shown_end, displayed)
        buffer.replace(attributes, attributes + 1, '0' if pruned else '1')
        buffer.narrow(*self._message_region(buffer, attributes))

    def expose(self, buffer: MessageBuffer):
        if self.headers_shown(buffer):
            return None
        self.toggle_headers(buffer)
        return True

    def restore(self, buffer: MessageBuffer, token):
        if token:
            self.toggle_headers(buffer)


# --- Threaded-article reader ----------------------------------------------

class ArticleMode(HeaderMode):
    """
    A news or mail article as a threaded reader shows it: the header
    fields that are not wanted are made invisible, not removed.
    """
    mode_id = 'article'

    def present(self, raw_message: str, visible_headers: Optional[Iterable[str]] = None) -> MessageBuffer:
        header_block, body = split_message(raw_message)
        buffer = MessageBuffer(header_block + '\n' + body, self.mode_id)
        buffer.visible_headers = list(self.visible_headers if visible_headers is None else visible_headers)
        self.hide_headers(buffer)
        return buffer

    def hide_headers(self, buffer: MessageBuffer, show_all: bool = False):
        blank = buffer.text.find('\n\n')
        if buffer.text.startswith('\n'):
            header_end = 0
        else:
            header_end = len(buffer.text) if blank == -1 else blank + 1
        ranges = [(s, e) for s, e in buffer.invisible if s >= header_end]
        if not show_all:
            visible = self.visible_for(buffer)
            pos = 0
            for name, raw in split_header_fields(buffer.text[:header_end]):
                if not header_matches(name, visible):
                    ranges.append((pos, pos + len(raw)))
                pos += len(raw)
        buffer.invisible = sorted(ranges)

    def expose(self, buffer: MessageBuffer):
        self.hide_headers(buffer, show_all=True)
        return None

    def restore(self, buffer: MessageBuffer, token):
        # Goes back to the default hiding, whatever was shown before.
        self.hide_headers(buffer, show_all=False)


# --- Registry -------------------------------------------------------------

NULL_MODE = NullMode()

MODES: Dict[str, HeaderMode] = {}
EXPOSE_HEADERS: Dict[str, Callable] = {}
RESTORE_HEADERS: Dict[str, Callable] = {}


def register_mode(mode: HeaderMode, mode_id: Optional[str] = None):
    mode_id = mode_id or mode.mode_id
    MODES[mode_id] = mode
    EXPOSE_HEADERS[mode_id] = mode.expose
    RESTORE_HEADERS[mode_id] = mode.restore


for _mode in (MboxMode(), BabylMode(), ArticleMode()):
    register_mode(_mode)


def mode_for(mode_id: str) -> HeaderMode:
    return MODES.get(mode_id, NULL_MODE)


def expose_headers(buffer: MessageBuffer):
    expose = EXPOSE_HEADERS.get(buffer.mode)
    if expose is None:
        logging.info(f"No header adapter for mode '{buffer.mode}'; exporting as displayed.")
        return None
    return expose(buffer)


def restore_headers(buffer: MessageBuffer, token):
    restore = RESTORE_HEADERS.get(buffer.mode)
    if restore is not None:
        restore(buffer, token)
