import pytest

from paycode.bip47 import Account
from paycode.bip47 import InvalidIndexError
from paycode.bip47 import InvalidKeyError
from paycode.bip47 import InvalidPaymentCodeError
from paycode.bip47 import addresses
from paycode.bip47 import derive_receive_key
from paycode.bip47 import derive_send_key
from paycode.bip47 import receive_address
from paycode.bip47 import send_address
from paycode.bitcoin.crypto import PrivateKey
from paycode.bitcoin.crypto import PublicKey
from tests.bip47.vectors import ALICE_TO_BOB_ADDRESSES
from tests.bip47.vectors import BOB_PAYMENT_CODE


@pytest.mark.parametrize("i", range(len(ALICE_TO_BOB_ADDRESSES)))
def test_alice_to_bob(alice, bob, i):
    assert send_address(alice, BOB_PAYMENT_CODE, i) == ALICE_TO_BOB_ADDRESSES[i]
    assert receive_address(bob, alice.payment_code, i) == ALICE_TO_BOB_ADDRESSES[i]


def test_key_agreement(alice, bob, carol):
    accounts = [alice, bob, carol]
    for payer in accounts:
        for payee in accounts:
            if payer is payee:
                continue
            for i in range(11):
                pub = derive_send_key(payer, payee.payment_code, i)
                priv = derive_receive_key(payee, payer.payment_code, i)
                assert isinstance(pub, PublicKey)
                assert isinstance(priv, PrivateKey)
                assert priv.public_key == pub


def test_directions_differ(alice, bob):
    sent = [send_address(alice, bob.payment_code, i) for i in range(5)]
    received = [receive_address(alice, bob.payment_code, i) for i in range(5)]
    assert len(set(sent)) == 5
    assert not set(sent) & set(received)


def test_code_forms(alice, bob):
    expected = send_address(alice, bob.payment_code, 4)
    assert send_address(alice, str(bob.payment_code), 4) == expected
    assert send_address(alice, bytes(bob.payment_code), 4) == expected
    assert send_address(alice, Account.from_payment_code(bob.payment_code), 4) == expected


def test_testnet(bob):
    alice_testnet = Account.from_mnemonic(
        "response seminar brave tip suit recall often sound stick owner lottery motion", testnet=True)
    address = send_address(alice_testnet, bob.payment_code, 0)
    assert address[0] in "mn"

    key = derive_receive_key(Account.from_mnemonic(
        "reward upper indicate eight swift arch injury crystal super wrestle already dentist", testnet=True),
        alice_testnet.payment_code, 0)
    assert key.testnet
    assert key.public_key.address(compressed=True, testnet=True) == address


@pytest.mark.parametrize("index", [-1, 0x80000000, "0", None])
def test_invalid_index(alice, bob, index):
    with pytest.raises(InvalidIndexError):
        send_address(alice, bob.payment_code, index)
    with pytest.raises(InvalidIndexError):
        receive_address(bob, alice.payment_code, index)


@pytest.mark.parametrize("code", ["", "PM8TJS2Jx", 42, None, b"\x01" * 80])
def test_invalid_code(alice, code):
    with pytest.raises(InvalidPaymentCodeError):
        send_address(alice, code, 0)
    with pytest.raises(InvalidPaymentCodeError):
        derive_receive_key(alice, code, 0)


def test_public_account_cannot_receive(bob):
    them = Account.from_payment_code(bob.payment_code)
    with pytest.raises(InvalidKeyError):
        addresses.derive_receive_key(them, bob.payment_code, 0)
