"""Tokenizes and classifies the scripts a payment-code wallet meets.

Three shapes matter: P2PKH outputs (payments and the notification
address output), P2PKH signature scripts (whose public key designates the
notification sender) and OP_RETURN outputs carrying a blinded payment
code. Scripts are never evaluated.
"""
import re
import struct

from paycode.bitcoin.crypto import PublicKey
from paycode.bitcoin.crypto import Signature
from paycode.bitcoin.exceptions import ScriptParsingError
from paycode.bitcoin.utils import bytes_to_str
from paycode.bitcoin.utils import hash160
from paycode.bitcoin.utils import key_hash_to_address
from paycode.bitcoin.utils import pack_var_str
from paycode.bitcoin.utils import unpack_var_str


def _opcode_table():
    table = {'OP_0': 0x00, 'OP_PUSHDATA1': 0x4c, 'OP_PUSHDATA2': 0x4d, 'OP_PUSHDATA4': 0x4e,
             'OP_1NEGATE': 0x4f}
    table.update(('OP_%d' % n, 0x50 + n) for n in range(1, 17))

    named = [
        (0x61, ['NOP', None, 'IF', 'NOTIF', None, None, 'ELSE', 'ENDIF', 'VERIFY', 'RETURN',
                'TOALTSTACK', 'FROMALTSTACK', '2DROP', '2DUP', '3DUP', '2OVER', '2ROT', '2SWAP',
                'IFDUP', 'DEPTH', 'DROP', 'DUP', 'NIP', 'OVER', 'PICK', 'ROLL', 'ROT', 'SWAP',
                'TUCK']),
        (0x82, ['SIZE']),
        (0x87, ['EQUAL', 'EQUALVERIFY']),
        (0x8b, ['1ADD', '1SUB', None, None, 'NEGATE', 'ABS', 'NOT', '0NOTEQUAL', 'ADD', 'SUB']),
        (0x9a, ['BOOLAND', 'BOOLOR', 'NUMEQUAL', 'NUMEQUALVERIFY', 'NUMNOTEQUAL', 'LESSTHAN',
                'GREATERTHAN', 'LESSTHANOREQUAL', 'GREATERTHANOREQUAL', 'MIN', 'MAX', 'WITHIN',
                'RIPEMD160', 'SHA1', 'SHA256', 'HASH160', 'HASH256', 'CODESEPARATOR', 'CHECKSIG',
                'CHECKSIGVERIFY', 'CHECKMULTISIG', 'CHECKMULTISIGVERIFY']),
        (0xb1, ['CHECKLOCKTIMEVERIFY']),
    ]
    for start, names in named:
        for offset, name in enumerate(names):
            if name is not None:
                table['OP_' + name] = start + offset
    return table


class Script(object):
    """ A script held either as raw bytes or as a token list.

    Tokens are opcode names (str) and pushed data (bytes). Raw scripts
    are disassembled lazily, so an unparseable script only raises once
    its tokens are needed.

    Args:
        script (bytes or str or list): Raw bytes, text such as
            "OP_DUP OP_HASH160 0x<hex> OP_EQUALVERIFY OP_CHECKSIG", or a
            token list.
    """

    BTC_OPCODE_TABLE = _opcode_table()
    BTC_OPCODE_REV_TABLE = {v: k for k, v in BTC_OPCODE_TABLE.items()}
    BTC_OPCODE_TABLE.update(OP_FALSE=0x00, OP_TRUE=0x51)

    PUSHDATA_WIDTHS = {0x4c: 1, 0x4d: 2, 0x4e: 4}

    P2PKH_RE = re.compile("^OP_DUP OP_HASH160 0x([0-9a-fA-F]{2}){20} OP_EQUALVERIFY OP_CHECKSIG$")

    @staticmethod
    def from_bytes(b):
        """ Reads a length-prefixed script off the front of b.

        Returns:
            tuple: (Script, remaining bytes).
        """
        raw, rest = unpack_var_str(b)
        return Script(raw), rest

    @staticmethod
    def from_hex(h, size_prepended=False):
        raw = bytes.fromhex(h)
        if size_prepended:
            return Script.from_bytes(raw)[0]
        return Script(raw)

    @staticmethod
    def build_p2pkh(hash160_key):
        """ OP_DUP OP_HASH160 <hash160_key> OP_EQUALVERIFY OP_CHECKSIG """
        return Script(['OP_DUP', 'OP_HASH160', hash160_key, 'OP_EQUALVERIFY', 'OP_CHECKSIG'])

    @staticmethod
    def build_null_data(data):
        """ OP_RETURN <data>, the unspendable carrier of a blinded payment
        code.
        """
        return Script(['OP_RETURN', data])

    @staticmethod
    def validate_template(script, template):
        """ Matches script token by token against template.

        Args:
            script (Script): Script to check.
            template (list): Opcode names, which must match exactly, and
                types (usually bytes), which the token must be.

        Returns:
            bool: True on a full match.
        """
        if len(script) != len(template):
            return False

        for token, expected in zip(script, template):
            if isinstance(expected, type):
                if type(token) != expected:
                    return False
            elif token != expected:
                return False

        return True

    def __init__(self, script=""):
        self._tokens = []
        self._raw_script = None

        if isinstance(script, bytes):
            self._raw_script = script
        elif isinstance(script, str):
            self._tokens = [bytes.fromhex(t[2:]) if t.startswith("0x") else t
                            for t in script.split()]
            self._validate_tokens()
        elif isinstance(script, list):
            self._tokens = script
            self._validate_tokens()
        else:
            raise TypeError("script must be bytes, str or list, not %r." % type(script))

    @property
    def tokens(self):
        if not self._tokens and self._raw_script:
            self._tokens = self._disassemble(self._raw_script)
        return self._tokens

    def __getitem__(self, key):
        return self.tokens[key]

    def __iter__(self):
        return iter(self.tokens)

    def __len__(self):
        return len(self.tokens)

    def __eq__(self, other):
        if not isinstance(other, Script):
            return NotImplemented
        return bytes(self) == bytes(other)

    def hash160(self):
        return hash160(bytes(self))

    def extract_sig_info(self):
        """ Splits a P2PKH signature script into its parts.

        Returns:
            dict: 'hash_type' (int), 'signature' (DER bytes with the hash
                type byte appended) and 'public_key' (SEC1 bytes).

        Raises:
            TypeError: If the script is not <signature> <public key>.
        """
        if len(self) != 2 or not all(isinstance(t, bytes) for t in self):
            raise TypeError("Script is not a P2PKH signature script.")

        sig_bytes, key_bytes = self[0], self[1]
        try:
            Signature.from_der(sig_bytes[:-1])
        except (ValueError, IndexError):
            raise TypeError("Signature does not appear to be valid.")
        try:
            PublicKey.from_bytes(key_bytes)
        except ValueError:
            raise TypeError("Public key does not appear to be valid.")

        return dict(hash_type=sig_bytes[-1], signature=sig_bytes, public_key=key_bytes)

    def is_p2pkh(self):
        return bool(self.P2PKH_RE.search(str(self)))

    def is_p2pkh_sig(self):
        try:
            self.extract_sig_info()
        except (TypeError, ScriptParsingError):
            return False
        return True

    def is_null_data(self):
        """ OP_RETURN followed by exactly one push. """
        return Script.validate_template(self, ['OP_RETURN', bytes])

    def get_null_data(self):
        """ The pushed payload of an OP_RETURN script, or None. """
        return self[1] if self.is_null_data() else None

    def get_hash160(self):
        """ The push following the first OP_HASH160, or None.

        Raises:
            ScriptParsingError: If the script is empty.
        """
        tokens = self.tokens
        if not tokens:
            raise ScriptParsingError("Script is empty.")

        for i, token in enumerate(tokens[:-1]):
            if token == "OP_HASH160":
                return tokens[i + 1]
        return None

    def get_addresses(self, testnet=False):
        """ Addresses this script pays to or spends from.

        A P2PKH output yields the address paid. A P2PKH signature script
        yields the address of the signing key. Anything else yields
        nothing.

        Returns:
            list(str): Zero or one Base58Check addresses.
        """
        if self.is_p2pkh():
            return [key_hash_to_address(self.get_hash160(), testnet)]
        if self.is_p2pkh_sig():
            return [key_hash_to_address(hash160(self[1]), testnet)]
        return []

    def _validate_tokens(self):
        for t in self._tokens:
            if t in ('OP_PUSHDATA1', 'OP_PUSHDATA2', 'OP_PUSHDATA4'):
                raise TypeError("Push opcodes are implied; pass the data as bytes.")
            if isinstance(t, str) and t not in self.BTC_OPCODE_TABLE:
                raise ValueError("%s is not a valid opcode" % t)

    @classmethod
    def _disassemble(cls, raw):
        """ Splits raw into tokens. Unknown opcodes become
        'OP_UNKNOWN_0x..'.

        Raises:
            ScriptParsingError: If a push runs past the end of the script.
        """
        tokens = []
        pos = 0
        while pos < len(raw):
            op = raw[pos]
            pos += 1

            if 0x01 <= op <= 0x4b:
                length = op
            elif op in cls.PUSHDATA_WIDTHS:
                width = cls.PUSHDATA_WIDTHS[op]
                if pos + width > len(raw):
                    raise ScriptParsingError("Truncated push length.")
                length = int.from_bytes(raw[pos:pos + width], 'little')
                pos += width
            else:
                tokens.append(cls.BTC_OPCODE_REV_TABLE.get(op, 'OP_UNKNOWN_0x%02x' % op))
                continue

            if pos + length > len(raw):
                raise ScriptParsingError("Push of %d bytes past end of script." % length)
            tokens.append(raw[pos:pos + length])
            pos += length

        return tokens

    def __str__(self):
        return " ".join("0x" + bytes_to_str(t) if isinstance(t, bytes) else t for t in self.tokens)

    def __bytes__(self):
        """ Serialized script, without a length prefix (see
        paycode.bitcoin.utils.pack_var_str).
        """
        if self._raw_script is not None:
            return self._raw_script

        out = b''
        for t in self._tokens:
            if not isinstance(t, bytes):
                out += bytes([self.BTC_OPCODE_TABLE[t]])
                continue

            n = len(t)
            if n == 0:
                raise ValueError("Empty byte string not allowed.")
            elif n <= 0x4b:
                out += bytes([n])
            elif n <= 0xff:
                out += bytes([0x4c, n])
            elif n <= 0xffff:
                out += bytes([0x4d]) + struct.pack("<H", n)
            elif n <= 0xffffffff:
                out += bytes([0x4e]) + struct.pack("<I", n)
            else:
                raise ValueError("Push too large.")
            out += t

        return out

    def to_hex(self):
        return bytes_to_str(bytes(self))
