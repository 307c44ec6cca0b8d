import base58
import hashlib
import hmac
import math
import random

from mnemonic import Mnemonic

from paycode.bitcoin.utils import bytes_to_str
from paycode.bitcoin.utils import hash160
from paycode.bitcoin.utils import key_hash_to_address
from paycode.crypto.ecdsa import ECPointAffine
from paycode.crypto.ecdsa import secp256k1

bitcoin_curve = secp256k1()


def get_bytes(s):
    """ Accepts raw bytes, or a hex string which is decoded.
    """
    if isinstance(s, bytes):
        return s
    if isinstance(s, str):
        return bytes.fromhex(s)
    raise TypeError("Expected bytes or a hex str, got %r." % type(s))


class PrivateKey(object):
    """ A secp256k1 signing scalar.

    Payment-code accounts hand these out for every derived receive
    address, and notification senders sign with them.

    Args:
        k (int): Scalar in [1, n - 1].
        testnet (bool): Selects the WIF version byte and the network of
            the derived public key.

    Raises:
        ValueError: If k is out of range.
    """
    TESTNET_VERSION = 0xEF
    MAINNET_VERSION = 0x80

    @staticmethod
    def from_bytes(b, testnet=False):
        """ Builds a key from its 32-byte big-endian encoding (or the hex
        of it).
        """
        raw = get_bytes(b)
        if len(raw) != 32:
            raise ValueError("Private key must be 32 bytes long.")
        return PrivateKey(int.from_bytes(raw, 'big'), testnet)

    @staticmethod
    def from_b58check(wif):
        """ Decodes a WIF string, compressed or not.

        Args:
            wif (str): Base58Check text starting with 5, K, L, 9 or c.

        Returns:
            PrivateKey: The decoded key. Its network follows the version
                byte.
        """
        raw = base58.b58decode_check(wif)
        if raw[0] not in (PrivateKey.TESTNET_VERSION, PrivateKey.MAINNET_VERSION):
            raise ValueError("Unknown private key version 0x%02x." % raw[0])
        # a trailing 0x01 only flags compression
        return PrivateKey(int.from_bytes(raw[1:33], 'big'), raw[0] == PrivateKey.TESTNET_VERSION)

    @staticmethod
    def from_random(testnet=False):
        return PrivateKey(random.SystemRandom().randrange(1, bitcoin_curve.n), testnet)

    def __init__(self, k, testnet=False):
        if not isinstance(k, int) or not 1 <= k < bitcoin_curve.n:
            raise ValueError("Private key must be an integer in [1, n - 1].")

        self.key = k
        self.testnet = testnet
        self.version = self.TESTNET_VERSION if testnet else self.MAINNET_VERSION
        self._public_key = None

    @property
    def public_key(self):
        """ The matching PublicKey, computed once. """
        if self._public_key is None:
            point = bitcoin_curve.public_key(self.key)
            self._public_key = PublicKey.from_point(point, self.testnet)
        return self._public_key

    def sign(self, message, do_hash=True):
        """ Produces a deterministic low-s ECDSA signature.

        Args:
            message (bytes): Data to sign. Transaction signing passes the
                double-SHA256 sighash together with do_hash=False.
            do_hash (bool): SHA256 the message before signing.

        Returns:
            Signature: The signature, carrying its recovery id.
        """
        if not isinstance(message, bytes):
            raise TypeError("message must be bytes.")
        point, recovery_id = bitcoin_curve.sign(message, self.key, do_hash)
        return Signature(point.x, point.y, recovery_id)

    def to_b58check(self, compressed=True):
        """ WIF encoding of this key. """
        suffix = b'\x01' if compressed else b''
        return base58.b58encode_check(bytes([self.version]) + bytes(self) + suffix).decode('ascii')

    def to_hex(self):
        return bytes_to_str(bytes(self))

    def __bytes__(self):
        return self.key.to_bytes(32, 'big')

    def __int__(self):
        return self.key

    def __eq__(self, other):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)


class PublicKey(object):
    """ A point on secp256k1 together with the network its addresses
    belong to.

    Args:
        x (int): Affine x coordinate.
        y (int): Affine y coordinate.
        testnet (bool): Default network for address().

    Raises:
        ValueError: If (x, y) is not on the curve.
    """

    @staticmethod
    def from_point(p, testnet=False):
        if getattr(p, 'infinity', False):
            raise ValueError("The point at infinity is not a valid public key.")
        return PublicKey(p.x, p.y, testnet)

    @staticmethod
    def from_bytes(key_bytes, testnet=False):
        """ Parses a SEC1 encoding.

        Three forms are accepted: 0x04 || x || y (65 bytes), and
        0x02 || x or 0x03 || x (33 bytes) where the prefix gives the
        parity of y.

        Args:
            key_bytes (bytes or str): The encoding, raw or as hex.
            testnet (bool): Default network for address().

        Returns:
            PublicKey: The parsed key.

        Raises:
            ValueError: On a bad prefix or length, or a point that is
                not on the curve.
        """
        b = get_bytes(key_bytes)
        if not b:
            raise ValueError("Empty public key.")

        prefix = b[0]
        if prefix == 0x04:
            if len(b) != 65:
                raise ValueError("Uncompressed public keys must be 65 bytes long.")
            return PublicKey(int.from_bytes(b[1:33], 'big'), int.from_bytes(b[33:], 'big'), testnet)

        if prefix not in (0x02, 0x03):
            raise ValueError("Unknown public key prefix 0x%02x." % prefix)
        if len(b) != 33:
            raise ValueError("Compressed public keys must be 33 bytes long.")
        x = int.from_bytes(b[1:], 'big')
        even, odd = bitcoin_curve.y_from_x(x)
        return PublicKey(x, odd if prefix == 0x03 else even, testnet)

    def __init__(self, x, y, testnet=False):
        p = ECPointAffine(bitcoin_curve, x, y)
        if not bitcoin_curve.is_on_curve(p):
            raise ValueError("Point (0x%x, 0x%x) is not on secp256k1." % (x, y))

        self.point = p
        self.testnet = testnet

    @property
    def compressed_bytes(self):
        """ 33-byte SEC1 compressed encoding. """
        return self.point.compressed_bytes

    def hash160(self, compressed=True):
        return hash160(self.compressed_bytes if compressed else bytes(self))

    def address(self, compressed=True, testnet=None):
        """ P2PKH address of this key.

        Args:
            compressed (bool): Hash the compressed encoding. Payment-code
                addresses always do.
            testnet (bool): Overrides the key's own network when given.

        Returns:
            str: Base58Check address.
        """
        if testnet is None:
            testnet = self.testnet
        return key_hash_to_address(self.hash160(compressed), testnet)

    def verify(self, message, signature, do_hash=True):
        """ Checks signature over message. A str message is read as hex.

        Returns:
            bool: Whether the signature is valid for this key.
        """
        return bitcoin_curve.verify(get_bytes(message), signature, self.point, do_hash)

    def to_hex(self):
        return bytes_to_str(self.compressed_bytes)

    def __bytes__(self):
        return bytes(self.point)

    def __eq__(self, other):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return (self.point.x, self.point.y) == (other.point.x, other.point.y)

    def __hash__(self):
        return hash((self.point.x, self.point.y))


def _der_integer(d, offset, name):
    """ Reads one DER INTEGER at d[offset:] and returns it with the offset
    just past it.
    """
    if d[offset] != 0x02:
        raise ValueError("DER signature: %s is not an INTEGER." % name)
    length = d[offset + 1]
    start = offset + 2
    body = d[start:start + length]
    if length == 0 or len(body) != length:
        raise ValueError("DER signature: bad %s length." % name)
    if body[0] & 0x80:
        raise ValueError("DER signature: %s is negative." % name)
    if length > 1 and body[0] == 0 and not body[1] & 0x80:
        raise ValueError("DER signature: %s is excessively padded." % name)

    value = int.from_bytes(body, 'big')
    if not 1 <= value < bitcoin_curve.n:
        raise ValueError("DER signature: %s is not between 1 and N - 1." % name)
    return value, start + length


class Signature(object):
    """ An ECDSA (r, s) pair.

    Exposes x and y aliases so the curve code can treat it as a Point.

    Args:
        r (int): r component.
        s (int): s component.
        recovery_id (int): Which of the up to four candidate public keys
            produced the signature, when known.
    """

    @staticmethod
    def from_der(der):
        """ Strictly parses 0x30 len 0x02 len(r) r 0x02 len(s) s.

        Args:
            der (bytes or str): The encoding, without a hash type byte.

        Returns:
            Signature: The parsed signature.

        Raises:
            ValueError: If the encoding is not strict DER.
        """
        d = get_bytes(der)
        if len(d) < 8:
            raise ValueError("DER signature string is too short.")
        if d[0] != 0x30 or d[1] != len(d) - 2:
            raise ValueError("DER signature has a bad header.")

        r, offset = _der_integer(d, 2, "r")
        if offset + 2 > len(d):
            raise ValueError("DER signature ends before s.")
        s, offset = _der_integer(d, offset, "s")
        if offset != len(d):
            raise ValueError("DER signature has trailing bytes.")

        return Signature(r, s)

    def __init__(self, r, s, recovery_id=None):
        self.r = r
        self.s = s
        self.recovery_id = recovery_id

    @property
    def x(self):
        return self.r

    @property
    def y(self):
        return self.s

    def to_der(self):
        """ Strict DER encoding of (r, s). """
        body = b''
        for v in (self.r, self.s):
            b = v.to_bytes(max(1, math.ceil(v.bit_length() / 8)), 'big')
            # a set high bit would read as negative
            if b[0] & 0x80:
                b = b'\x00' + b
            body += bytes([0x02, len(b)]) + b
        return bytes([0x30, len(body)]) + body

    def to_hex(self):
        return bytes_to_str(bytes(self))

    def __bytes__(self):
        nbytes = math.ceil(bitcoin_curve.nlen / 8)
        return self.r.to_bytes(nbytes, 'big') + self.s.to_bytes(nbytes, 'big')


class HDKey(object):
    """ Base class for BIP32 hierarchical deterministic keys.

        Holds the fields shared by extended private and public keys and
        handles the 78-byte extended key serialization.

    Args:
        key (PrivateKey or PublicKey): The underlying key.
        chain_code (bytes): The 32-byte chain code.
        index (int): Index of this key within its parent.
        depth (int): Number of derivations from the master key.
        parent_fingerprint (bytes): First 4 bytes of the parent's
           identifier.
    """
    MAINNET_PRIVATE_VERSION = 0x0488ADE4
    MAINNET_PUBLIC_VERSION = 0x0488B21E
    TESTNET_PRIVATE_VERSION = 0x04358394
    TESTNET_PUBLIC_VERSION = 0x043587CF

    HARDENED = 0x80000000

    @staticmethod
    def from_b58check(key):
        """ Decodes a Base58Check encoded extended key (xprv/xpub/tprv/tpub).

        Args:
            key (str): The Base58Check encoded key.

        Returns:
            HDKey: An HDPrivateKey or HDPublicKey.
        """
        return HDKey.from_bytes(base58.b58decode_check(key))

    @staticmethod
    def from_bytes(b):
        """ Deserializes a 78-byte extended key.

        Args:
            b (bytes): The serialized key.

        Returns:
            HDKey: An HDPrivateKey or HDPublicKey.
        """
        if len(b) != 78:
            raise ValueError("Extended keys must be 78 bytes long.")

        version = int.from_bytes(b[:4], 'big')
        depth = b[4]
        parent_fingerprint = b[5:9]
        index = int.from_bytes(b[9:13], 'big')
        chain_code = b[13:45]
        key_bytes = b[45:]

        if version in [HDKey.MAINNET_PRIVATE_VERSION, HDKey.TESTNET_PRIVATE_VERSION]:
            if key_bytes[0] != 0:
                raise ValueError("Extended private keys must start with 0x00.")
            testnet = version == HDKey.TESTNET_PRIVATE_VERSION
            return HDPrivateKey(key=int.from_bytes(key_bytes[1:], 'big'),
                                chain_code=chain_code,
                                index=index,
                                depth=depth,
                                parent_fingerprint=parent_fingerprint,
                                testnet=testnet)
        elif version in [HDKey.MAINNET_PUBLIC_VERSION, HDKey.TESTNET_PUBLIC_VERSION]:
            testnet = version == HDKey.TESTNET_PUBLIC_VERSION
            pub = PublicKey.from_bytes(key_bytes, testnet)
            return HDPublicKey(x=pub.point.x,
                               y=pub.point.y,
                               chain_code=chain_code,
                               index=index,
                               depth=depth,
                               parent_fingerprint=parent_fingerprint,
                               testnet=testnet)
        else:
            raise ValueError("Unknown extended key version 0x%08x." % version)

    @staticmethod
    def parse_path(path):
        """ Parses a derivation path such as "m/47'/0'/0'" into indices.

        Both "'" and "h" mark hardened components.

        Args:
            path (str): The derivation path.

        Returns:
            list(int): The child indices, in order.
        """
        parts = path.split('/')
        if parts[0] not in ['m', 'M']:
            raise ValueError("Derivation paths must start with 'm' or 'M'.")

        indices = []
        for p in parts[1:]:
            if not p:
                continue
            hardened = p[-1] in "'hH"
            num = int(p[:-1] if hardened else p)
            if num < 0 or num >= HDKey.HARDENED:
                raise ValueError("Path component %r out of range." % p)
            indices.append(num | HDKey.HARDENED if hardened else num)

        return indices

    @staticmethod
    def from_path(root_key, path):
        """ Derives every key along path starting at root_key.

        Args:
            root_key (HDKey): The key the path is relative to.
            path (str): The derivation path, e.g. "m/47'/0'/0'".

        Returns:
            list(HDKey): root_key followed by each derived key.
        """
        keys = [root_key]
        for index in HDKey.parse_path(path):
            parent = keys[-1]
            if isinstance(parent, HDPrivateKey):
                keys.append(HDPrivateKey.from_parent(parent, index))
            else:
                keys.append(HDPublicKey.from_parent(parent, index))

        return keys

    def __init__(self, key, chain_code, index, depth, parent_fingerprint):
        if len(chain_code) != 32:
            raise ValueError("chain_code must be 32 bytes long.")
        if depth > 255:
            raise ValueError("Maximum derivation depth exceeded.")

        self._key = key
        self.chain_code = chain_code
        self.index = index
        self.depth = depth
        self.parent_fingerprint = parent_fingerprint

    @property
    def master(self):
        return self.depth == 0

    @property
    def hardened(self):
        return bool(self.index & self.HARDENED)

    @property
    def testnet(self):
        return self._key.testnet

    @property
    def identifier(self):
        """ hash160 of the compressed public key.
        """
        raise NotImplementedError

    @property
    def fingerprint(self):
        return self.identifier[:4]

    def _serialize(self, version, key_bytes):
        return (version.to_bytes(4, 'big') +
                bytes([self.depth]) +
                self.parent_fingerprint +
                self.index.to_bytes(4, 'big') +
                self.chain_code +
                key_bytes)

    def to_b58check(self):
        """ Generates the Base58Check encoding of this extended key.

        Returns:
            str: An xprv/xpub (or tprv/tpub) string.
        """
        return base58.b58encode_check(bytes(self)).decode('ascii')

    def __str__(self):
        return self.to_b58check()


class HDPrivateKey(HDKey):
    """ A BIP32 extended private key.

    Args:
        key (int): The private key scalar.
        chain_code (bytes): The 32-byte chain code.
        index (int): Index of this key within its parent.
        depth (int): Number of derivations from the master key.
        parent_fingerprint (bytes): 4-byte fingerprint of the parent.
        testnet (bool): Serialize with testnet versions.
    """

    @staticmethod
    def master_key_from_seed(seed, testnet=False):
        """ Generates a master key from a seed (BIP32).

        Args:
            seed (bytes or str): The seed, as bytes or hex.
            testnet (bool): Serialize with testnet versions.

        Returns:
            HDPrivateKey: The master key.
        """
        S = get_bytes(seed)
        I = hmac.new(b"Bitcoin seed", S, hashlib.sha512).digest()
        Il, Ir = I[:32], I[32:]
        parse_Il = int.from_bytes(Il, 'big')
        if parse_Il == 0 or parse_Il >= bitcoin_curve.n:
            raise ValueError("Bad seed, resulting in invalid key!")

        return HDPrivateKey(key=parse_Il,
                            chain_code=Ir,
                            index=0,
                            depth=0,
                            parent_fingerprint=bytes(4),
                            testnet=testnet)

    @staticmethod
    def master_key_from_mnemonic(mnemonic, passphrase='', testnet=False):
        """ Generates a master key from a BIP39 mnemonic.

        Args:
            mnemonic (str): The mnemonic sentence.
            passphrase (str): Optional BIP39 passphrase.
            testnet (bool): Serialize with testnet versions.

        Returns:
            HDPrivateKey: The master key.
        """
        seed = Mnemonic.to_seed(mnemonic, passphrase=passphrase)
        return HDPrivateKey.master_key_from_seed(seed, testnet)

    @staticmethod
    def from_parent(parent_key, i):
        """ Derives a child private key (CKDpriv).

        Args:
            parent_key (HDPrivateKey): The parent key.
            i (int): The child index. Values with the high bit set
               are hardened.

        Returns:
            HDPrivateKey: The child key.
        """
        if not isinstance(parent_key, HDPrivateKey):
            raise TypeError("parent_key must be an HDPrivateKey object.")
        if i < 0 or i > 0xffffffff:
            raise ValueError("Child index out of range.")

        if i & HDKey.HARDENED:
            data = bytes([0]) + bytes(parent_key._key) + i.to_bytes(4, 'big')
        else:
            data = parent_key.public_key.compressed_bytes + i.to_bytes(4, 'big')

        I = hmac.new(parent_key.chain_code, data, hashlib.sha512).digest()
        Il, Ir = I[:32], I[32:]

        parse_Il = int.from_bytes(Il, 'big')
        if parse_Il >= bitcoin_curve.n:
            return None

        child_key = (parse_Il + parent_key._key.key) % bitcoin_curve.n
        if child_key == 0:
            # Incredibly unlucky choice
            return None

        return HDPrivateKey(key=child_key,
                            chain_code=Ir,
                            index=i,
                            depth=parent_key.depth + 1,
                            parent_fingerprint=parent_key.fingerprint,
                            testnet=parent_key.testnet)

    def __init__(self, key, chain_code, index, depth, parent_fingerprint=bytes(4), testnet=False):
        private_key = PrivateKey(key, testnet)
        super().__init__(private_key, chain_code, index, depth, parent_fingerprint)
        self._public_key = None

    @property
    def key(self):
        """ The underlying PrivateKey.
        """
        return self._key

    @property
    def public_key(self):
        """ The extended public key corresponding to this key.

        Returns:
            HDPublicKey: The neutered key.
        """
        if self._public_key is None:
            pub = self._key.public_key
            self._public_key = HDPublicKey(x=pub.point.x,
                                           y=pub.point.y,
                                           chain_code=self.chain_code,
                                           index=self.index,
                                           depth=self.depth,
                                           parent_fingerprint=self.parent_fingerprint,
                                           testnet=self.testnet)
        return self._public_key

    @property
    def identifier(self):
        return self.public_key.identifier

    def sign(self, message, do_hash=True):
        return self._key.sign(message, do_hash)

    def __bytes__(self):
        version = self.TESTNET_PRIVATE_VERSION if self.testnet else self.MAINNET_PRIVATE_VERSION
        return self._serialize(version, bytes([0]) + bytes(self._key))

    def __int__(self):
        return self._key.key


class HDPublicKey(HDKey):
    """ A BIP32 extended public key.

    Args:
        x (int): x component of the public key point.
        y (int): y component of the public key point.
        chain_code (bytes): The 32-byte chain code.
        index (int): Index of this key within its parent.
        depth (int): Number of derivations from the master key.
        parent_fingerprint (bytes): 4-byte fingerprint of the parent.
        testnet (bool): Serialize with testnet versions.
    """

    @staticmethod
    def from_parent(parent_key, i):
        """ Derives a child public key (CKDpub).

        Args:
            parent_key (HDPublicKey or HDPrivateKey): The parent key. A
               private key is neutered first.
            i (int): The child index; must not be hardened.

        Returns:
            HDPublicKey: The child key.

        Raises:
            ValueError: If i is a hardened index.
        """
        if isinstance(parent_key, HDPrivateKey):
            parent_key = parent_key.public_key
        if not isinstance(parent_key, HDPublicKey):
            raise TypeError("parent_key must be an HDPublicKey object.")
        if i < 0 or i > 0xffffffff:
            raise ValueError("Child index out of range.")
        if i & HDKey.HARDENED:
            raise ValueError("Can't generate a hardened child key from a parent public key.")

        data = parent_key.compressed_bytes + i.to_bytes(4, 'big')
        I = hmac.new(parent_key.chain_code, data, hashlib.sha512).digest()
        Il, Ir = I[:32], I[32:]

        parse_Il = int.from_bytes(Il, 'big')
        if parse_Il >= bitcoin_curve.n:
            return None

        point = bitcoin_curve.public_key(parse_Il) + parent_key._key.point
        if point.infinity:
            return None

        return HDPublicKey(x=point.x,
                           y=point.y,
                           chain_code=Ir,
                           index=i,
                           depth=parent_key.depth + 1,
                           parent_fingerprint=parent_key.fingerprint,
                           testnet=parent_key.testnet)

    def __init__(self, x, y, chain_code, index, depth, parent_fingerprint=bytes(4), testnet=False):
        public_key = PublicKey(x, y, testnet)
        super().__init__(public_key, chain_code, index, depth, parent_fingerprint)

    @property
    def key(self):
        """ The underlying PublicKey.
        """
        return self._key

    @property
    def point(self):
        return self._key.point

    @property
    def compressed_bytes(self):
        return self._key.compressed_bytes

    @property
    def identifier(self):
        return self._key.hash160(compressed=True)

    def hash160(self, compressed=True):
        return self._key.hash160(compressed)

    def address(self, compressed=True, testnet=None):
        """ P2PKH address of this key.

        Returns:
            str: A Base58Check encoded address.
        """
        return self._key.address(compressed, testnet)

    def verify(self, message, signature, do_hash=True):
        return self._key.verify(message, signature, do_hash)

    def __bytes__(self):
        version = self.TESTNET_PUBLIC_VERSION if self.testnet else self.MAINNET_PUBLIC_VERSION
        return self._serialize(version, self.compressed_bytes)
