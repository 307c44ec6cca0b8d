import hashlib
import math
import random

from paycode.crypto.ecdsa_base import EllipticCurveBase
from paycode.crypto.ecdsa_base import Point


class ECPointAffine(object):
    """ A point (x, y) on curve, or the point at infinity.

    Arithmetic converts to Jacobian coordinates and back, so each
    operator pays a single modular inversion.

    Args:
        curve (EllipticCurve): Owning curve.
        x (int): x coordinate.
        y (int): y coordinate.
        infinity (bool): Marks the identity element. x and y are then
            ignored.
    """

    def __init__(self, curve, x, y, infinity=False):
        self.x = x
        self.y = y
        self.curve = curve
        self.infinity = infinity

    def __str__(self):
        return "(0x%x, 0x%x)" % (self.x, self.y)

    def __eq__(self, b):
        return ((self.x == b.x) and (self.y == b.y)) or \
            (self.infinity and b.infinity)

    def __add__(self, b):
        assert self.curve == b.curve
        return (self.to_jacobian() + b.to_jacobian()).to_affine()

    def __sub__(self, b):
        return self + (-b)

    def __neg__(self):
        return ECPointAffine(self.curve, self.x, (-self.y) % self.curve.p, self.infinity)

    def __mul__(self, k):
        return (self.to_jacobian() * k).to_affine()

    def to_jacobian(self):
        if self.infinity:
            return ECPointJacobian(self.curve, 0, 0, 0, True)

        return ECPointJacobian(self.curve, self.x, self.y, 1)

    @property
    def compressed_bytes(self):
        """ SEC1 compressed form: 0x02 or 0x03 (the parity of y), then x.
        """
        nbytes = math.ceil(self.curve.nlen / 8)
        return bytes([(self.y & 0x1) + 0x02]) + self.x.to_bytes(nbytes, 'big')

    def __bytes__(self):
        """ SEC1 uncompressed form: 0x04 || x || y. """
        nbytes = math.ceil(self.curve.nlen / 8)
        return bytes([0x04]) + self.x.to_bytes(nbytes, 'big') + self.y.to_bytes(nbytes, 'big')


class ECPointJacobian(object):
    """ A Jacobian representation of an elliptic curve point.

    (X, Y, Z) corresponds to the affine point (X / Z^2, Y / Z^3).
    Additions and doublings avoid the modular inversion that
    affine arithmetic needs at every step.

    Args:
        curve (EllipticCurve): The curve the point is on.
        x (int): X component of point.
        y (int): Y component of point.
        z (int): Z component of point.
        infinity (bool): Whether or not this point is at infinity.
    """

    def __init__(self, curve, x, y, z, infinity=False):
        self.x = x
        self.y = y
        self.z = z
        self.curve = curve
        self.infinity = infinity or z == 0

    def __str__(self):
        return "(0x%x, 0x%x, 0x%x)" % (self.x, self.y, self.z)

    def to_affine(self):
        """ (X / Z^2, Y / Z^3), or infinity. """
        if self.infinity:
            return ECPointAffine(self.curve, 0, 0, True)

        p = self.curve.p
        z_inv = pow(self.z, p - 2, p)
        z_inv2 = (z_inv * z_inv) % p
        return ECPointAffine(self.curve,
                             (self.x * z_inv2) % p,
                             (self.y * z_inv2 * z_inv) % p)

    def double(self):
        p = self.curve.p
        if self.infinity or self.y == 0:
            return ECPointJacobian(self.curve, 0, 0, 0, True)

        y2 = (self.y * self.y) % p
        s = (4 * self.x * y2) % p
        z2 = (self.z * self.z) % p
        m = (3 * self.x * self.x + self.curve.a * z2 * z2) % p
        x3 = (m * m - 2 * s) % p
        y3 = (m * (s - x3) - 8 * y2 * y2) % p
        z3 = (2 * self.y * self.z) % p

        return ECPointJacobian(self.curve, x3, y3, z3)

    def __add__(self, b):
        assert self.curve == b.curve
        if self.infinity:
            return b
        if b.infinity:
            return self

        p = self.curve.p
        z1z1 = (self.z * self.z) % p
        z2z2 = (b.z * b.z) % p
        u1 = (self.x * z2z2) % p
        u2 = (b.x * z1z1) % p
        s1 = (self.y * b.z * z2z2) % p
        s2 = (b.y * self.z * z1z1) % p

        if u1 == u2:
            if s1 != s2:
                return ECPointJacobian(self.curve, 0, 0, 0, True)
            return self.double()

        h = (u2 - u1) % p
        r = (s2 - s1) % p
        h2 = (h * h) % p
        h3 = (h * h2) % p
        u1h2 = (u1 * h2) % p

        x3 = (r * r - h3 - 2 * u1h2) % p
        y3 = (r * (u1h2 - x3) - s1 * h3) % p
        z3 = (h * self.z * b.z) % p

        return ECPointJacobian(self.curve, x3, y3, z3)

    def __neg__(self):
        return ECPointJacobian(self.curve, self.x, (-self.y) % self.curve.p, self.z, self.infinity)

    def __sub__(self, b):
        return self + (-b)

    def __mul__(self, k):
        k %= self.curve.n
        rv = ECPointJacobian(self.curve, 0, 0, 0, True)
        if k == 0 or self.infinity:
            return rv

        # Simple double-and-add, most significant bit first
        for bit in bin(k)[2:]:
            rv = rv.double()
            if bit == '1':
                rv = rv + self

        return rv


class EllipticCurve(EllipticCurveBase):
    """ Pure Python curve arithmetic and ECDSA.

    Args:
        p (int): Field prime.
        a (int): Coefficient of x.
        b (int): Constant term.
        n (int): Order of G.
        G (Point): Base point.
        h (int): Cofactor.
        hash_function (function): hashlib constructor for messages.
    """

    def __init__(self, p, a, b, n, G, h, hash_function):
        super().__init__(hash_function)
        self.p = p
        self.a = a
        self.b = b
        self.n = n
        self.G = G
        self.h = h

        self.nlen = n.bit_length()
        self.plen = p.bit_length()

        self.base_point = ECPointAffine(self, G.x, G.y)

    @property
    def Gx(self):
        return self.G.x

    @property
    def Gy(self):
        return self.G.y

    def is_on_curve(self, p):
        """ False for infinity and for coordinates outside the field. """
        if getattr(p, 'infinity', False):
            return False
        if not (0 <= p.x < self.p and 0 <= p.y < self.p):
            return False
        return (p.y * p.y - (p.x ** 3 + self.a * p.x + self.b)) % self.p == 0

    def y_from_x(self, x):
        """ Both square roots of x^3 + ax + b.

        Payment codes carry only x and a parity byte, so decoding one
        needs this.

        Returns:
            list: [even y, odd y].

        Raises:
            ValueError: If no point has this x.
        """
        if not 0 <= x < self.p:
            raise ValueError("x is not a field element.")

        # Only valid for p = 3 mod 4, which holds for secp256k1
        rhs = (x ** 3 + self.a * x + self.b) % self.p
        y = pow(rhs, (self.p + 1) // 4, self.p)
        if (y * y) % self.p != rhs:
            raise ValueError("No point on the curve with x = 0x%x." % x)

        other = (self.p - y) % self.p
        return [y, other] if y & 0x1 == 0 else [other, y]

    def gen_key_pair(self, random_generator=random.SystemRandom()):
        """ Returns (scalar, point) for a fresh random scalar. """
        private = random_generator.randrange(1, self.n)
        return private, self.public_key(private)

    def public_key(self, private_key):
        """ private_key * G """
        return self.base_point * private_key

    def multiply(self, point, scalar):
        return point * scalar

    def _sign(self, message, private_key, do_hash=True, secret=None):
        hashed = self.hash_function(message).digest() if do_hash else message
        num_bytes = math.ceil(self.nlen / 8)
        z = int.from_bytes(hashed[:num_bytes], 'big')

        r = 0
        s = 0
        recovery_id = 0
        while r == 0 or s == 0:
            k = self._nonce_rfc6979(private_key, hashed) if secret is None else secret

            pt = self.base_point * k
            recovery_id = 2 if pt.x > self.n else 0
            recovery_id |= (pt.y & 0x1)

            r = pt.x % self.n
            if r == 0:
                continue

            s = (pow(k, self.n - 2, self.n) * (z + r * private_key)) % self.n

        # Enforce low-s signatures (BIP62)
        if s > self.n // 2:
            s = self.n - s
            recovery_id ^= 0x1

        return (Point(r, s), recovery_id)

    def verify(self, message, signature, public_key, do_hash=True):
        r = signature.x
        s = signature.y
        if not (1 <= r < self.n and 1 <= s < self.n):
            return False

        hashed = self.hash_function(message).digest() if do_hash else message
        num_bytes = math.ceil(self.nlen / 8)
        z = int.from_bytes(hashed[:num_bytes], 'big')

        w = pow(s, self.n - 2, self.n)
        u1 = (z * w) % self.n
        u2 = (r * w) % self.n

        pt = (self.base_point.to_jacobian() * u1 +
              public_key.to_jacobian() * u2).to_affine()
        if pt.infinity:
            return False

        return pt.x % self.n == r


class secp256k1(EllipticCurve):
    """ The bitcoin curve, y^2 = x^3 + 7 over the 256-bit prime field. """
    P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
    A = 0
    B = 7
    N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
    Gx = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
    Gy = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8
    H = 1

    def __init__(self):
        super().__init__(p=self.P,
                         a=self.A,
                         b=self.B,
                         n=self.N,
                         G=Point(self.Gx, self.Gy),
                         h=self.H,
                         hash_function=hashlib.sha256)
