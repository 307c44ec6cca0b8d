"""Transaction and block hashes, which bitcoin displays byte-reversed."""
from paycode.bitcoin.utils import bytes_to_str
from paycode.bitcoin.utils import dhash


class Hash(object):
    """ A 32-byte hash that knows both of its orderings.

    Hex text is taken and shown in display (RPC) order. Bytes are kept in
    wire order as given. Notification outpoints are built from the wire
    order.

    Args:
        h (bytes or str): Wire-order bytes or display-order hex.
    """

    @staticmethod
    def dhash(b):
        """ SHA256(SHA256(b)) as a Hash. """
        return Hash(dhash(b))

    def __init__(self, h):
        if isinstance(h, bytes):
            if len(h) != 32:
                raise ValueError("h must be 32 bytes long")
            self._bytes = h
        elif isinstance(h, str):
            if len(h) != 64:
                raise ValueError("h must be 32 bytes (64 hex chars) long")
            self._bytes = bytes.fromhex(h)[::-1]
        else:
            raise TypeError("h must be either a str or bytes")

    def __bytes__(self):
        return self._bytes

    def __eq__(self, other):
        if isinstance(other, (str, bytes)):
            other = Hash(other) if isinstance(other, str) else other
        if isinstance(other, Hash):
            other = other._bytes
        if isinstance(other, bytes):
            return self._bytes == other
        return NotImplemented

    def __hash__(self):
        return hash(self._bytes)

    def __str__(self):
        return bytes_to_str(self._bytes[::-1])

    def __repr__(self):
        return "Hash('%s')" % str(self)
