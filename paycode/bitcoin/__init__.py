# flake8: noqa
"""The bitcoin module within paycode (``paycode.bitcoin``) provides the
Bitcoin primitives a payment-code wallet needs:

1. Serialization/deserialization of transactions, scripts, public/private
   keys and digital signatures. Serialization is achieved via the
   ``bytes()`` method and deserialization is achieved via the
   ``from_bytes()`` static method of each class.
2. Classification of standard scripts: Pay-to-Public-Key-Hash (P2PKH)
   outputs and signature scripts, and OP_RETURN data carriers.
3. Legacy P2PKH transaction signing and verification.
4. Standard public/private key generation as well as BIP32 HD keys.
"""
from .crypto import PrivateKey
from .crypto import PublicKey
from .crypto import Signature
from .crypto import HDKey
from .crypto import HDPrivateKey
from .crypto import HDPublicKey

from .exceptions import DeserializationError
from .exceptions import InvalidTransactionInputError
from .exceptions import InvalidTransactionOutputError
from .exceptions import InvalidTransactionError
from .exceptions import ScriptParsingError

from .hash import Hash

from .script import Script

from .txn import TransactionInput
from .txn import TransactionOutput
from .txn import Transaction
