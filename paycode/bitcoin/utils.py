# -*- Mode: Python -*-
"""Wire-format helpers: little-endian integers, CompactSize varints and
P2PKH address encoding."""
import base58
import codecs
import hashlib
import struct

MAINNET_P2PKH_VERSION = 0x00
TESTNET_P2PKH_VERSION = 0x6f


def bytes_to_str(b):
    return codecs.encode(b, 'hex_codec').decode('ascii')

def dhash(s):
    return hashlib.sha256(hashlib.sha256(s).digest()).digest()

def hash160(b):
    """ RIPEMD160(SHA256(b)), the hash behind P2PKH addresses.
    """
    rip = hashlib.new('ripemd160')
    rip.update(hashlib.sha256(b).digest())
    return rip.digest()

def pack_compact_int(i):
    """ CompactSize: one byte below 0xfd, otherwise a 0xfd/0xfe/0xff marker
    followed by a 2, 4 or 8 byte little-endian integer.
    """
    for marker, fmt, limit in ((None, '<B', 0xfc), (0xfd, '<H', 0xffff), (0xfe, '<I', 0xffffffff)):
        if i <= limit:
            return (bytes([marker]) if marker else b'') + struct.pack(fmt, i)
    return bytes([0xff]) + struct.pack('<Q', i)

def unpack_compact_int(bytestr):
    """ Inverse of pack_compact_int.

    Returns:
        tuple: (value, remaining bytes)

    Raises:
        IndexError: On empty input.
        struct.error: If the input ends inside the integer.
    """
    marker = bytestr[0]
    widths = {0xfd: ('<H', 2), 0xfe: ('<I', 4), 0xff: ('<Q', 8)}
    if marker not in widths:
        return marker, bytestr[1:]
    fmt, n = widths[marker]
    return struct.unpack(fmt, bytestr[1:1 + n])[0], bytestr[1 + n:]

def pack_u32(i):
    return struct.pack('<I', i)

def unpack_u32(b):
    return struct.unpack('<I', b[:4])[0], b[4:]

def pack_u64(i):
    return struct.pack('<Q', i)

def unpack_u64(b):
    return struct.unpack('<Q', b[:8])[0], b[8:]

def pack_var_str(s):
    return pack_compact_int(len(s)) + s

def unpack_var_str(b):
    n, rest = unpack_compact_int(b)
    return rest[:n], rest[n:]

def key_hash_to_address(hash160_bytes, testnet=False):
    """ Base58Check encodes a P2PKH key hash.

    Args:
        hash160_bytes (bytes): 20-byte RIPEMD160(SHA256(pubkey)).
        testnet (bool): Use the testnet version byte.

    Returns:
        str: The Base58Check address.
    """
    version = TESTNET_P2PKH_VERSION if testnet else MAINNET_P2PKH_VERSION
    return base58.b58encode_check(bytes([version]) + hash160_bytes).decode('ascii')

def address_to_key_hash(s):
    """ Decodes a P2PKH address.

    Args:
        s (str): Base58Check address.

    Returns:
        tuple: (version (int), hash160 (bytes))

    Raises:
        ValueError: If the checksum is invalid or the payload is not
            a version byte followed by a 20-byte hash.
    """
    n = base58.b58decode_check(s)
    if len(n) != 21:
        raise ValueError("Address payload must be 21 bytes.")
    return n[0], n[1:]
