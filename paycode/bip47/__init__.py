# flake8: noqa
"""Reusable payment codes (BIP47).

A payment code lets two wallets derive a fresh, unlinkable address for
every payment after a single notification transaction:

1. ``PaymentCode``: the 80 byte payload and its "PM8T..." text form.
2. ``Account``: the m/47'/0'/0' account, its child keys and its
   notification address.
3. ``notification``: building, recognizing and decoding the blinded
   notification payload.
4. ``addresses``: the per-payment send and receive keys.
"""
from .exceptions import Bip47Error
from .exceptions import InvalidKeyError
from .exceptions import MalformedPaymentCodeError
from .exceptions import InvalidIndexError
from .exceptions import InvalidPaymentCodeError
from .exceptions import NotANotificationError
from .exceptions import PersistenceError
from .exceptions import RescanSkipped

from .secret_point import SecretPoint
from .secret_point import agree

from .payment_code import PaymentCode

from .account import Account
from .account import derive_account

from .addresses import derive_send_key
from .addresses import derive_receive_key
from .addresses import send_address
from .addresses import receive_address
