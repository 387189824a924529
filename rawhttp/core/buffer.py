"""
Per-connection receive buffer.

Each connection owns exactly one :class:`ReceiveBuffer`. Bytes are appended
as they arrive and the consumed prefix is dropped after every framed request.
"""

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


class ReceiveBuffer:
    """Growable byte accumulator for a single connection.

    The framer is handed a view of the current contents for the duration of
    one call only; it never keeps a reference to the underlying bytearray.
    """

    def __init__(self, initial: BytesLike = b''):
        self._data = bytearray(initial)

    def __iadd__(self, data: BytesLike) -> 'ReceiveBuffer':
        self._data += data
        return self

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self._data)} bytes)"

    def view(self) -> memoryview:
        """Read-only view of the buffered bytes."""
        return memoryview(self._data).toreadonly()

    def replace(self, remainder: BytesLike) -> None:
        """Drop everything that was framed, keeping only ``remainder``."""
        self._data = bytearray(remainder)

    def clear(self) -> None:
        self._data = bytearray()

    def exceeds(self, limit: int) -> bool:
        return len(self._data) > limit
