"""Deterministic per-payment addresses between two payment codes.

For the i-th payment from Alice to Bob::

    S = a0 * B_i = b_i * A0
    s = SHA256(Sx)
    send key (Alice)    = B_i + s * G
    receive key (Bob)   = b_i + s  (mod n)

a0/A0 is Alice's notification keypair and b_i/B_i Bob's i-th child.
"""
import logging

from paycode.bip47.account import Account
from paycode.bip47.account import check_index
from paycode.bip47.exceptions import InvalidKeyError
from paycode.bip47.exceptions import InvalidPaymentCodeError
from paycode.bip47.exceptions import MalformedPaymentCodeError
from paycode.bip47.payment_code import PaymentCode
from paycode.bip47.secret_point import SecretPoint
from paycode.bitcoin.crypto import PrivateKey
from paycode.bitcoin.crypto import PublicKey
from paycode.bitcoin.crypto import bitcoin_curve

logger = logging.getLogger('bip47')


def _their_account(their_code, testnet):
    if isinstance(their_code, Account):
        return their_code
    if not isinstance(their_code, (PaymentCode, str, bytes)):
        raise InvalidPaymentCodeError("Expected a payment code, got %r." % type(their_code))
    try:
        code = PaymentCode.parse(their_code)
    except MalformedPaymentCodeError as e:
        raise InvalidPaymentCodeError(str(e))
    return Account.from_payment_code(code, testnet)


def _shared_scalar(secret):
    s = int.from_bytes(secret.shared_secret(), 'big')
    if s >= bitcoin_curve.n:
        raise InvalidKeyError("Shared secret is not a valid scalar.")
    return s


def derive_send_key(our_account, their_code, index):
    """ Public key we pay for the index-th payment to their_code.

    Args:
        our_account (Account): Our private account.
        their_code (PaymentCode or str): The payee's payment code.
        index (int): Payment index, starting at 0.

    Returns:
        PublicKey: The one-time public key.

    Raises:
        InvalidIndexError: If index is out of range.
        InvalidPaymentCodeError: If their_code is not a payment code.
        InvalidKeyError: If the shared secret or the result is not a
            usable key.
    """
    check_index(index)
    them = _their_account(their_code, our_account.testnet)

    b_i = them.child_public_key(index)
    secret = SecretPoint(our_account.notification_key, b_i)
    s = _shared_scalar(secret)

    point = b_i.point + bitcoin_curve.public_key(s)
    if point.infinity:
        raise InvalidKeyError("Send key is the point at infinity.")

    return PublicKey.from_point(point, our_account.testnet)


def derive_receive_key(our_account, their_code, index):
    """ Private key controlling the index-th payment from their_code to us.

    Args:
        our_account (Account): Our private account.
        their_code (PaymentCode or str): The payer's payment code.
        index (int): Payment index, starting at 0.

    Returns:
        PrivateKey: The one-time private key.

    Raises:
        InvalidIndexError: If index is out of range.
        InvalidPaymentCodeError: If their_code is not a payment code.
        InvalidKeyError: If our_account is public only, or the shared
            secret or the result is not a usable key.
    """
    check_index(index)
    them = _their_account(their_code, our_account.testnet)
    if not our_account.is_private:
        raise InvalidKeyError("Receive keys need an account with private keys.")

    b_i = our_account.child_key(index)
    secret = SecretPoint(b_i, them.child_public_key(0))
    s = _shared_scalar(secret)

    k = (b_i.key.key + s) % bitcoin_curve.n
    if k == 0:
        raise InvalidKeyError("Receive key is zero.")

    logger.debug("Derived receive key %d for %s", index, them.payment_code)
    return PrivateKey(k, our_account.testnet)


def send_address(our_account, their_code, index):
    """ Compressed P2PKH address of derive_send_key().

    Returns:
        str: Base58Check address.
    """
    return derive_send_key(our_account, their_code, index).address(compressed=True)


def receive_address(our_account, their_code, index):
    """ Compressed P2PKH address of derive_receive_key().

    Returns:
        str: Base58Check address.
    """
    return derive_receive_key(our_account, their_code, index).public_key.address(compressed=True)
