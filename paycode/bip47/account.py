"""The BIP47 account at m/47'/0'/0' and the keys hanging off it."""
import logging

from paycode.bip47.exceptions import InvalidIndexError
from paycode.bip47.exceptions import InvalidPaymentCodeError
from paycode.bip47.exceptions import MalformedPaymentCodeError
from paycode.bip47.payment_code import PaymentCode
from paycode.bitcoin.crypto import HDKey
from paycode.bitcoin.crypto import HDPrivateKey
from paycode.bitcoin.crypto import HDPublicKey

logger = logging.getLogger('bip47')

ACCOUNT_PATH = "m/47'/0'/0'"
NOTIFICATION_INDEX = 0
MAX_INDEX = 0x7fffffff


def check_index(index):
    """ Raises InvalidIndexError unless index is a non-hardened child index.
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidIndexError("Index must be an integer, not %r." % type(index))
    if index < 0 or index > MAX_INDEX:
        raise InvalidIndexError("Index %d is outside [0, 2**31 - 1]." % index)


def derive_account(seed, testnet=False):
    """ Derives the payment-code account from a wallet seed.

    Args:
        seed (bytes or str): BIP32 seed, as bytes or hex.
        testnet (bool): Whether addresses should use testnet versions.

    Returns:
        Account: The account at m/47'/0'/0'.
    """
    master = HDPrivateKey.master_key_from_seed(seed, testnet)
    return Account(HDKey.from_path(master, ACCOUNT_PATH)[-1], testnet)


class Account(object):
    """ A payment-code account.

    Holds either the account's extended private key (our own account) or
    only the extended public key recovered from a payment code (a
    counterparty). Child keys are derived non-hardened from the account
    key; child 0 is the notification key.

    Args:
        key (HDPrivateKey or HDPublicKey): The account-level key.
        testnet (bool): Whether addresses should use testnet versions.
    """

    @staticmethod
    def from_mnemonic(words, passphrase='', testnet=False):
        """ Builds our own account from a BIP39 mnemonic.

        Args:
            words (str): The mnemonic sentence.
            passphrase (str): Optional BIP39 passphrase.
            testnet (bool): Whether addresses should use testnet versions.

        Returns:
            Account: The account at m/47'/0'/0'.
        """
        master = HDPrivateKey.master_key_from_mnemonic(words, passphrase, testnet)
        return Account(HDKey.from_path(master, ACCOUNT_PATH)[-1], testnet)

    @staticmethod
    def from_payment_code(code, testnet=False):
        """ Builds a public-only account for a counterparty.

        Args:
            code (PaymentCode or str): Their payment code.
            testnet (bool): Whether addresses should use testnet versions.

        Returns:
            Account: An account that can derive public keys only.

        Raises:
            InvalidPaymentCodeError: If code is not a payment code.
        """
        try:
            code = PaymentCode.parse(code)
        except MalformedPaymentCodeError as e:
            raise InvalidPaymentCodeError(str(e))

        return Account(code.hd_public_key(testnet), testnet, payment_code=code)

    def __init__(self, key, testnet=False, payment_code=None):
        if not isinstance(key, (HDPrivateKey, HDPublicKey)):
            raise TypeError("key must be an HDPrivateKey or HDPublicKey.")

        self.key = key
        self.testnet = testnet
        self._payment_code = payment_code or PaymentCode.from_hd_key(key)
        self._children = {}
        self._notification_address = None

    @property
    def is_private(self):
        """ True if this account can derive private keys.
        """
        return isinstance(self.key, HDPrivateKey)

    @property
    def payment_code(self):
        return self._payment_code

    def child_key(self, index):
        """ Derives the non-hardened child at index.

        Args:
            index (int): Child index in [0, 2**31 - 1].

        Returns:
            HDPrivateKey or HDPublicKey: The child, private when this
                account holds the private key.

        Raises:
            InvalidIndexError: If index is out of range.
        """
        check_index(index)
        child = self._children.get(index)
        if child is None:
            if self.is_private:
                child = HDPrivateKey.from_parent(self.key, index)
            else:
                child = HDPublicKey.from_parent(self.key, index)
            if child is None:
                # Il >= n; BIP32 says skip, BIP47 has no rule for it
                raise InvalidIndexError("Index %d yields an invalid child key." % index)
            self._children[index] = child
            logger.debug("Derived child %d of %s", index, self._payment_code)

        return child

    def child_public_key(self, index):
        """ The public key of the child at index.

        Returns:
            HDPublicKey: The child public key.
        """
        child = self.child_key(index)
        return child.public_key if isinstance(child, HDPrivateKey) else child

    @property
    def notification_key(self):
        """ Child 0 of the account, private when available.
        """
        return self.child_key(NOTIFICATION_INDEX)

    @property
    def notification_address(self):
        """ Compressed P2PKH address of the notification key.

        Returns:
            str: Base58Check address.
        """
        if self._notification_address is None:
            pub = self.child_public_key(NOTIFICATION_INDEX)
            self._notification_address = pub.address(compressed=True, testnet=self.testnet)
        return self._notification_address

    def __repr__(self):
        return "Account(%s%s)" % (self._payment_code, "" if self.is_private else ", public")
