"""Encoding and decoding of BIP47 payment codes.

A payment code is an 80 byte payload::

    version (1) | features (1) | public key (33) | chain code (32) | reserved (13)

shown to users as Base58Check with the version byte 0x47, which makes every
version 1 code start with "PM8T".
"""
import base58

from paycode.bip47.exceptions import MalformedPaymentCodeError
from paycode.bitcoin.crypto import HDPrivateKey
from paycode.bitcoin.crypto import HDPublicKey
from paycode.bitcoin.crypto import PublicKey


class PaymentCode(object):
    """ An immutable BIP47 payment code.

    Args:
        public_key (bytes): 33-byte compressed public key of the account.
        chain_code (bytes): 32-byte chain code of the account.
        version (int): Payment code version.
        features (int): Feature bitfield.
        reserved (bytes): The 13 trailing bytes, zero for codes we create.

    Raises:
        MalformedPaymentCodeError: If any field is malformed.
    """
    B58_VERSION = 0x47
    PAYLOAD_LENGTH = 80
    SUPPORTED_VERSIONS = {1}

    PUBKEY_OFFSET = 2
    CHAIN_CODE_OFFSET = 35
    RESERVED_OFFSET = 67

    @staticmethod
    def from_bytes(payload):
        """ Decodes an 80-byte payload.

        Args:
            payload (bytes): The raw payload.

        Returns:
            PaymentCode: The decoded code.

        Raises:
            MalformedPaymentCodeError: If the payload is not a valid code.
        """
        if not isinstance(payload, (bytes, bytearray)):
            raise MalformedPaymentCodeError("Payload must be bytes.")
        if len(payload) != PaymentCode.PAYLOAD_LENGTH:
            raise MalformedPaymentCodeError(
                "Payload must be %d bytes, got %d." % (PaymentCode.PAYLOAD_LENGTH, len(payload)))

        payload = bytes(payload)
        return PaymentCode(public_key=payload[PaymentCode.PUBKEY_OFFSET:PaymentCode.CHAIN_CODE_OFFSET],
                           chain_code=payload[PaymentCode.CHAIN_CODE_OFFSET:PaymentCode.RESERVED_OFFSET],
                           version=payload[0],
                           features=payload[1],
                           reserved=payload[PaymentCode.RESERVED_OFFSET:])

    @staticmethod
    def from_b58check(text):
        """ Decodes the textual form of a payment code.

        Args:
            text (str): Base58Check string, usually starting with "PM8T".

        Returns:
            PaymentCode: The decoded code.

        Raises:
            MalformedPaymentCodeError: On a bad checksum, prefix or payload.
        """
        if not isinstance(text, str):
            raise MalformedPaymentCodeError("Payment code text must be a str.")
        try:
            raw = base58.b58decode_check(text.strip())
        except ValueError as e:
            raise MalformedPaymentCodeError("Bad Base58Check encoding: %s" % e)

        if len(raw) != PaymentCode.PAYLOAD_LENGTH + 1:
            raise MalformedPaymentCodeError("Decoded payment code has the wrong length.")
        if raw[0] != PaymentCode.B58_VERSION:
            raise MalformedPaymentCodeError("Wrong payment code prefix 0x%02x." % raw[0])

        return PaymentCode.from_bytes(raw[1:])

    @staticmethod
    def from_hd_key(key, version=1):
        """ Builds the payment code of an account-level extended key.

        Args:
            key (HDPrivateKey or HDPublicKey): The m/47'/0'/n' key.

        Returns:
            PaymentCode: The account's payment code.
        """
        pub = key.public_key if isinstance(key, HDPrivateKey) else key
        return PaymentCode(pub.compressed_bytes, key.chain_code, version)

    @staticmethod
    def is_valid(value):
        """ Checks whether value decodes as a payment code.

        Args:
            value (str or bytes): Base58Check text or a raw payload.

        Returns:
            bool: True if value is a well-formed payment code.
        """
        try:
            PaymentCode.parse(value)
        except MalformedPaymentCodeError:
            return False
        return True

    @staticmethod
    def parse(value):
        """ Accepts a PaymentCode, its text form or its payload.

        Returns:
            PaymentCode: The decoded code.
        """
        if isinstance(value, PaymentCode):
            return value
        if isinstance(value, str):
            return PaymentCode.from_b58check(value)
        if isinstance(value, (bytes, bytearray)):
            return PaymentCode.from_bytes(value)
        raise MalformedPaymentCodeError("Cannot interpret %r as a payment code." % type(value))

    def __init__(self, public_key, chain_code, version=1, features=0, reserved=bytes(13)):
        if version not in self.SUPPORTED_VERSIONS:
            raise MalformedPaymentCodeError("Unsupported payment code version %d." % version)
        if not 0 <= features <= 0xff:
            raise MalformedPaymentCodeError("features must fit in one byte.")
        if len(public_key) != 33 or public_key[0] not in (0x02, 0x03):
            raise MalformedPaymentCodeError("Public key must be a 33-byte compressed key.")
        if len(chain_code) != 32:
            raise MalformedPaymentCodeError("Chain code must be 32 bytes.")
        if len(reserved) != 13:
            raise MalformedPaymentCodeError("Reserved field must be 13 bytes.")

        try:
            self._public_key = PublicKey.from_bytes(bytes(public_key))
        except ValueError as e:
            raise MalformedPaymentCodeError("Public key is not on the curve: %s" % e)

        self._pubkey_bytes = bytes(public_key)
        self._chain_code = bytes(chain_code)
        self._version = version
        self._features = features
        self._reserved = bytes(reserved)

    @property
    def version(self):
        return self._version

    @property
    def features(self):
        return self._features

    @property
    def public_key(self):
        """ The account public key as a PublicKey.
        """
        return self._public_key

    @property
    def public_key_bytes(self):
        return self._pubkey_bytes

    @property
    def chain_code(self):
        return self._chain_code

    def hd_public_key(self, testnet=False):
        """ The account-level extended public key this code describes.

        Returns:
            HDPublicKey: Key whose non-hardened children are the
                code's child keys.
        """
        point = self._public_key.point
        return HDPublicKey(x=point.x,
                           y=point.y,
                           chain_code=self._chain_code,
                           index=HDPublicKey.HARDENED,
                           depth=3,
                           testnet=testnet)

    def to_b58check(self):
        return base58.b58encode_check(bytes([self.B58_VERSION]) + bytes(self)).decode('ascii')

    def to_hex(self):
        return bytes(self).hex()

    def __bytes__(self):
        return (bytes([self._version, self._features]) +
                self._pubkey_bytes +
                self._chain_code +
                self._reserved)

    def __str__(self):
        return self.to_b58check()

    def __repr__(self):
        return "PaymentCode('%s')" % self.to_b58check()

    def __eq__(self, other):
        if not isinstance(other, PaymentCode):
            return NotImplemented
        return bytes(self) == bytes(other)

    def __hash__(self):
        return hash(bytes(self))
