"""Elliptic-curve Diffie-Hellman between one party's private key and the
other party's public key."""
import hashlib

from paycode.bip47.exceptions import InvalidKeyError
from paycode.bitcoin.crypto import HDPrivateKey
from paycode.bitcoin.crypto import HDPublicKey
from paycode.bitcoin.crypto import PrivateKey
from paycode.bitcoin.crypto import PublicKey
from paycode.bitcoin.crypto import bitcoin_curve


def private_scalar(private_key):
    """ Normalizes a private key to its integer scalar.

    Args:
        private_key (PrivateKey or HDPrivateKey or int or bytes): The key.

    Returns:
        int: The scalar, guaranteed to be in [1, n - 1].

    Raises:
        InvalidKeyError: If the key is out of range or of an unknown type.
    """
    if isinstance(private_key, HDPrivateKey):
        k = private_key.key.key
    elif isinstance(private_key, PrivateKey):
        k = private_key.key
    elif isinstance(private_key, bytes):
        if len(private_key) != 32:
            raise InvalidKeyError("Private keys must be 32 bytes long.")
        k = int.from_bytes(private_key, 'big')
    elif isinstance(private_key, int) and not isinstance(private_key, bool):
        k = private_key
    else:
        raise InvalidKeyError("Unsupported private key type %r." % type(private_key))

    if not 1 <= k < bitcoin_curve.n:
        raise InvalidKeyError("Private key is out of range.")

    return k


def public_point(public_key):
    """ Normalizes a public key to a curve point.

    Args:
        public_key (PublicKey or HDPublicKey or bytes): The key, bytes
            being a 33- or 65-byte SEC encoding.

    Returns:
        ECPointAffine: A point on secp256k1.

    Raises:
        InvalidKeyError: If the encoding is malformed or the point is not
            on the curve.
    """
    if isinstance(public_key, (PublicKey, HDPublicKey)):
        return public_key.point

    if isinstance(public_key, bytes):
        try:
            return PublicKey.from_bytes(public_key).point
        except ValueError as e:
            raise InvalidKeyError("Bad public key: %s" % e)

    raise InvalidKeyError("Unsupported public key type %r." % type(public_key))


class SecretPoint(object):
    """ The shared point S = priv * Pub.

    Both parties reach the same point: a * B == b * A.

    Args:
        private_key: Our private key (see private_scalar()).
        public_key: Their public key (see public_point()).

    Raises:
        InvalidKeyError: If either key is invalid.
    """

    def __init__(self, private_key, public_key):
        k = private_scalar(private_key)
        point = bitcoin_curve.multiply(public_point(public_key), k)
        if point.infinity:
            raise InvalidKeyError("Shared secret is the point at infinity.")
        self.point = point

    def x_bytes(self):
        """ The 32-byte big-endian x coordinate of S.
        """
        return self.point.x.to_bytes(32, 'big')

    def shared_secret(self):
        """ SHA256 of the x coordinate of S.
        """
        return hashlib.sha256(self.x_bytes()).digest()

    def __eq__(self, other):
        if not isinstance(other, SecretPoint):
            return NotImplemented
        return self.point == other.point


def agree(private_key, public_key):
    """ Shorthand for SecretPoint(private_key, public_key).shared_secret().

    Returns:
        bytes: The 32-byte shared secret.
    """
    return SecretPoint(private_key, public_key).shared_secret()
