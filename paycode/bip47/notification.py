"""Building, recognizing and decoding BIP47 notification transactions.

Alice tells Bob her payment code by paying Bob's notification address in a
transaction that also carries her payload in an OP_RETURN output. The public
key and chain code of the payload are masked with::

    mask = HMAC-SHA512(key=outpoint, msg=Sx)

where Sx is the x coordinate of a * B, a being the private key of the first
input Alice spends and B Bob's notification public key, and outpoint is the
36-byte serialized outpoint of that input. Bob recomputes Sx as b * A using
the public key exposed by the input's signature script.
"""
import hashlib
import hmac
import logging

from paycode.bip47.account import Account
from paycode.bip47.exceptions import MalformedPaymentCodeError
from paycode.bip47.exceptions import NotANotificationError
from paycode.bip47.payment_code import PaymentCode
from paycode.bip47.secret_point import SecretPoint
from paycode.bitcoin.crypto import PublicKey
from paycode.bitcoin.exceptions import ScriptParsingError
from paycode.bitcoin.script import Script
from paycode.bitcoin.txn import TransactionInput
from paycode.bitcoin.txn import TransactionOutput
from paycode.bitcoin.utils import address_to_key_hash
from paycode.bitcoin.utils import pack_u32

logger = logging.getLogger('bip47')

MIN_NON_DUST_VALUE = 546
"""Value of the output paying the recipient's notification address."""

PAYLOAD_LENGTH = PaymentCode.PAYLOAD_LENGTH
MASK_LENGTH = 64


def outpoint_bytes(txn_input):
    """ Serializes the outpoint an input spends.

    Args:
        txn_input (TransactionInput): The input.

    Returns:
        bytes: txid in internal byte order followed by the output index
            as a little-endian u32 (36 bytes).
    """
    return bytes(txn_input.outpoint) + pack_u32(txn_input.outpoint_index)


def get_mask(secret_x, outpoint):
    """ The BIP47 blinding factor.

    Args:
        secret_x (bytes): x coordinate of the ECDH point (32 bytes).
        outpoint (bytes): Serialized outpoint (36 bytes).

    Returns:
        bytes: 64-byte HMAC-SHA512 of secret_x keyed by outpoint.
    """
    return hmac.new(outpoint, secret_x, hashlib.sha512).digest()


def expand_mask(mask):
    """ Lays a 64-byte mask over the public key x coordinate (bytes 3..34)
    and chain code (bytes 35..66) of an 80-byte payload.

    Returns:
        bytes: An 80-byte keystream, zero outside those ranges.
    """
    if len(mask) == PAYLOAD_LENGTH:
        return bytes(mask)
    if len(mask) != MASK_LENGTH:
        raise ValueError("mask must be %d or %d bytes long." % (MASK_LENGTH, PAYLOAD_LENGTH))

    return bytes(3) + bytes(mask) + bytes(PAYLOAD_LENGTH - 3 - MASK_LENGTH)


def blind(payload, mask):
    """ XORs an 80-byte payload with a mask.

    Args:
        payload (bytes): The payload.
        mask (bytes): A 64-byte mask from get_mask() or an 80-byte
            keystream from expand_mask().

    Returns:
        bytes: The masked payload.
    """
    if len(payload) != PAYLOAD_LENGTH:
        raise MalformedPaymentCodeError("Payload must be %d bytes long." % PAYLOAD_LENGTH)

    keystream = expand_mask(mask)
    return bytes(p ^ k for p, k in zip(payload, keystream))


unblind = blind


def _their_notification_public_key(their_code, testnet=False):
    return Account.from_payment_code(their_code, testnet).child_public_key(0)


def build_notification_output(account, their_code, input_private_key, outpoint):
    """ Builds the OP_RETURN output carrying our blinded payment code.

    Args:
        account (Account): Our account.
        their_code (PaymentCode or str): The recipient's payment code.
        input_private_key: Private key of the first input of the
            notification transaction.
        outpoint (bytes or TransactionInput): That input's outpoint.

    Returns:
        TransactionOutput: A zero-value OP_RETURN output.

    Raises:
        InvalidKeyError: If the ECDH step fails. Nothing is built then,
            so an unblinded code can never be emitted.
    """
    if isinstance(outpoint, TransactionInput):
        outpoint = outpoint_bytes(outpoint)
    if len(outpoint) != 36:
        raise ValueError("outpoint must be 36 bytes long.")

    their_key = _their_notification_public_key(their_code, account.testnet)
    secret = SecretPoint(input_private_key, their_key)
    mask = get_mask(secret.x_bytes(), outpoint)
    blinded = blind(bytes(account.payment_code), mask)

    return TransactionOutput(0, Script.build_null_data(blinded))


def build_notification_outputs(account, their_code, input_private_key, outpoint,
                               value=MIN_NON_DUST_VALUE):
    """ Both outputs a notification transaction needs.

    Returns:
        list(TransactionOutput): The payment to the recipient's
            notification address followed by the OP_RETURN output.
    """
    their_account = Account.from_payment_code(their_code, account.testnet)
    _, h160 = address_to_key_hash(their_account.notification_address)
    return [TransactionOutput(value, Script.build_p2pkh(h160)),
            build_notification_output(account, their_code, input_private_key, outpoint)]


def is_notification_payload_output(output):
    """ Whether output is OP_RETURN with one 80-byte push starting with a
    supported version byte.
    """
    try:
        data = output.script.get_null_data()
    except ScriptParsingError:
        return False

    return (data is not None and
            len(data) == PAYLOAD_LENGTH and
            data[0] in PaymentCode.SUPPORTED_VERSIONS)


def find_notification_payload(txn):
    """ The first notification payload carried by txn, or None.
    """
    for o in txn.outputs:
        if is_notification_payload_output(o):
            return o.script.get_null_data()
    return None


def output_address(output, testnet=False):
    """ The P2PKH address an output pays, or None for any other script.
    """
    try:
        if output.script.is_p2pkh():
            return output.script.get_addresses(testnet)[0]
    except ScriptParsingError:
        pass
    return None


def pays_to(txn, address):
    """ Whether any P2PKH output of txn pays address.
    """
    _, h160 = address_to_key_hash(address)
    for o in txn.outputs:
        try:
            if o.script.is_p2pkh() and o.script.get_hash160() == h160:
                return True
        except ScriptParsingError:
            continue
    return False


def is_notification_to(txn, notification_address):
    """ Whether txn is a notification addressed to notification_address:
    it pays that address and carries a payload output.
    """
    return pays_to(txn, notification_address) and find_notification_payload(txn) is not None


def designated_public_key(txn):
    """ The public key exposed by the first input's signature script.

    Returns:
        PublicKey: The key, or None if the first input is not a P2PKH
            spend.
    """
    if not txn.inputs:
        return None
    try:
        sig_info = txn.inputs[0].script.extract_sig_info()
    except (TypeError, ScriptParsingError):
        return None
    return PublicKey.from_bytes(sig_info['public_key'])


def decode_notification(txn, notification_private_key):
    """ Recovers the sender's payment code from a notification.

    Decoding is a pure function of txn and the key, so decoding the same
    transaction twice gives the same code.

    Args:
        txn (Transaction): The notification transaction.
        notification_private_key: Our notification (child 0) private key.

    Returns:
        PaymentCode: The sender's payment code.

    Raises:
        NotANotificationError: If txn has no payload or no designated
            public key.
        MalformedPaymentCodeError: If the unblinded payload is not a
            payment code.
        InvalidKeyError: If the ECDH step fails.
    """
    blinded = find_notification_payload(txn)
    if blinded is None:
        raise NotANotificationError("Transaction carries no notification payload.")

    designated = designated_public_key(txn)
    if designated is None:
        raise NotANotificationError("First input exposes no public key.")

    secret = SecretPoint(notification_private_key, designated)
    mask = get_mask(secret.x_bytes(), outpoint_bytes(txn.inputs[0]))
    payload = unblind(blinded, mask)

    code = PaymentCode.from_bytes(payload)
    logger.debug("Decoded payment code %s from %s", code, txn.hash)
    return code


def find_outgoing_notification_address(txn, is_mine, testnet=False):
    """ Detects a notification transaction we sent.

    Args:
        txn (Transaction): A transaction we broadcast.
        is_mine (callable): Predicate over TransactionInput and
            TransactionOutput telling whether it belongs to our wallet.
        testnet (bool): Address network.

    Returns:
        str: The recipient's notification address, or None if txn does
            not have the shape of a notification.
    """
    if not txn.inputs or not all(is_mine(i) for i in txn.inputs):
        return None
    if find_notification_payload(txn) is None:
        return None

    for o in txn.outputs:
        if o.value != MIN_NON_DUST_VALUE or is_mine(o):
            continue
        address = output_address(o, testnet)
        if address is not None:
            return address

    return None
