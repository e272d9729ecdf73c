from __future__ import annotations

import logging
import threading
from typing import BinaryIO, Iterator, Optional

import requests
from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)

# ICY length byte counts 16-byte units
ICY_BLOCK_UNIT = 16


def _read_exact(stream: BinaryIO, n: int) -> Optional[bytes]:
    chunks = []
    remaining = n
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            return None
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def decode_icy_block(block: bytes) -> str:
    # blocks are NUL padded; most servers send UTF-8, some latin-1
    block = block.rstrip(b"\0")
    try:
        return block.decode("utf-8").strip()
    except UnicodeDecodeError:
        return block.decode("latin-1").strip()


def iter_icy_blocks(stream: BinaryIO, metaint: int, chunk_size: int = 8192) -> Iterator[str]:
    """
    Yields each non-empty metadata block of an ICY stream.

    Layout: `metaint` bytes of audio, one length byte, length*16 bytes of
    metadata, repeated. Stops quietly when the stream ends.
    """
    if metaint <= 0:
        return

    while True:
        remaining = metaint
        while remaining > 0:
            chunk = stream.read(min(chunk_size, remaining))
            if not chunk:
                return
            remaining -= len(chunk)

        length_byte = stream.read(1)
        if not length_byte:
            return
        length = length_byte[0] * ICY_BLOCK_UNIT
        if length == 0:
            continue

        block = _read_exact(stream, length)
        if block is None:
            return
        text = decode_icy_block(block)
        if text:
            yield text


class IcyMetadataReader(QObject):
    """
    Side connection to a stream asking for ICY metadata (Icy-MetaData: 1).

    Runs on a daemon thread; results are emitted as signals, which Qt queues
    onto the thread that owns the receivers.
    """

    headersReceived = Signal(object)      # dict of icy-* headers
    streamTitleReceived = Signal(str)     # raw "StreamTitle='...';" block

    def __init__(self, url: str, user_agent: str, timeout: float = 10, parent=None):
        super().__init__(parent)
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._response: Optional[requests.Response] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="icy-metadata", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        resp = self._response
        if resp is not None:
            try:
                resp.close()
            except Exception:
                pass

    def _run(self) -> None:
        headers = {"Icy-MetaData": "1", "User-Agent": self.user_agent}
        try:
            with requests.get(self.url, headers=headers, stream=True, timeout=self.timeout) as r:
                self._response = r
                r.raise_for_status()

                icy_headers = {k.lower(): v for k, v in r.headers.items() if k.lower().startswith("icy-")}
                if icy_headers and not self._stop.is_set():
                    self.headersReceived.emit(icy_headers)

                try:
                    metaint = int(r.headers.get("icy-metaint") or 0)
                except ValueError:
                    metaint = 0

                last = None
                for text in iter_icy_blocks(r.raw, metaint):
                    if self._stop.is_set():
                        break
                    if text != last:
                        last = text
                        self.streamTitleReceived.emit(text)
        except (requests.RequestException, OSError, ValueError) as e:
            if not self._stop.is_set():
                logger.debug("ICY metadata unavailable for %s: %s", self.url, e)
        except RuntimeError:
            # owner QObject deleted while we were still reading
            pass
        finally:
            self._response = None
