from collections import namedtuple
import hmac


Point = namedtuple('Point', ['x', 'y'])
"An (x, y) pair: an affine point, or an (r, s) signature."


class EllipticCurveBase(object):
    """ Interface of a short Weierstrass curve y^2 = x^3 + a*x + b.

    Backends provide point arithmetic plus ECDSA over their curve. Signing
    nonces are always derived deterministically, so two signatures of the
    same message with the same key are byte-identical.

    Args:
        hash_function (function): hashlib constructor applied to messages
            before signing or verifying.
    """

    def __init__(self, hash_function):
        self.hash_function = hash_function

    def is_on_curve(self, p):
        raise NotImplementedError

    def y_from_x(self, x):
        raise NotImplementedError

    def public_key(self, private_key):
        raise NotImplementedError

    def multiply(self, point, scalar):
        """ scalar * point for an arbitrary point. Both sides of an ECDH
        exchange call this with the counterparty's point.
        """
        raise NotImplementedError

    def _sign(self, message, private_key, do_hash=True, secret=None):
        raise NotImplementedError

    def sign(self, message, private_key, do_hash=True):
        """ Signs message with private_key.

        Args:
            message (bytes): Message, or its digest when do_hash is False.
            private_key (int): Signing scalar.
            do_hash (bool): Hash the message first.

        Returns:
            (Point, int): The (r, s) signature and the recovery id of the
                public key.
        """
        return self._sign(message, private_key, do_hash)

    def verify(self, message, signature, public_key, do_hash=True):
        raise NotImplementedError

    def _nonce_rfc6979(self, private_key, message):
        """ Deterministic k from RFC6979 section 3.2. message must already
        be a digest.
        """
        size = 32
        key_msg = private_key.to_bytes(size, 'big') + message

        V = b'\x01' * size
        K = b'\x00' * size
        K = self._hmac(K, V + b'\x00' + key_msg)
        V = self._hmac(K, V)
        K = self._hmac(K, V + b'\x01' + key_msg)
        V = self._hmac(K, V)

        while True:
            T = b''
            while 8 * len(T) < self.nlen:
                V = self._hmac(K, V)
                T += V

            k = int.from_bytes(T, 'big')
            if 1 <= k < self.n - 1:
                return k

            K = self._hmac(K, V + b'\x00')
            V = self._hmac(K, V)

    def _hmac(self, key, data):
        return hmac.new(key, data, self.hash_function).digest()
