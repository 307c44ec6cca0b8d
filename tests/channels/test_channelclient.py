import logging
import os
import threading

import pytest

import paycode.bitcoin as bitcoin
import paycode.channels.client as client
import paycode.channels.statemachine as statemachine
import paycode.channels.walletwrapper as walletwrapper
import tests.channels.mock as mock
from paycode.bip47 import Account
from paycode.bip47 import PersistenceError
from paycode.bip47 import addresses
from paycode.bip47 import notification
from paycode.config import Config
from tests.bip47.vectors import ALICE_TO_BOB_ADDRESSES

DAVE_MNEMONIC = "legal winner thank year wave sausage worth useful legal winner thank yellow"


@pytest.fixture(scope="module")
def dave():
    return Account.from_mnemonic(DAVE_MNEMONIC)


def make_client(account, wallet=None, blockchain=None, db=None, **kwargs):
    return client.ChannelClient(account,
                                wallet or mock.MockWallet(),
                                blockchain or mock.MockBlockchain(),
                                db or mock.MemoryDatabase(),
                                **kwargs)


def imported_addresses(wallet):
    return [k.public_key.address(compressed=True) for k in wallet.get_imported_keys()]


def test_requires_private_account(bob):
    with pytest.raises(ValueError):
        make_client(Account.from_payment_code(bob.payment_code))


def test_watches_notification_address(bob):
    wallet = mock.MockWallet()
    make_client(bob, wallet=wallet)
    assert wallet.is_watched(bob.notification_address)


def test_inbound_notification(alice, bob):
    wallet = mock.MockWallet()
    bc = mock.MockBlockchain(height=500)
    db = mock.MemoryDatabase()
    pc = make_client(bob, wallet, bc, db)
    assert pc.list() == []

    ntx = mock.make_notification(alice, bob.payment_code)
    assert pc.process_received(ntx, height=420)

    assert pc.list() == [alice.notification_address]
    model = pc.channel_for(alice.notification_address)
    assert model.payment_code == alice.payment_code
    assert model.incoming_addresses == [statemachine.IncomingAddress(ALICE_TO_BOB_ADDRESSES[0], 0)]
    assert model.current_incoming_index == 0
    assert model.status == statemachine.ChannelStatus.UNSENT

    assert pc.channel_for_payment_code(alice.payment_code) is model
    assert pc.channel_for_payment_code(str(alice.payment_code)) is model
    assert pc.channel_for_address(ALICE_TO_BOB_ADDRESSES[0]) is model

    assert imported_addresses(wallet) == [ALICE_TO_BOB_ADDRESSES[0]]
    assert bc.rollbacks == [418]
    assert db.records == pc.export_channels()
    assert db.records[0]['paymentCode'] == str(alice.payment_code)


def test_inbound_notification_idempotent(alice, bob):
    wallet = mock.MockWallet()
    bc = mock.MockBlockchain()
    db = mock.MemoryDatabase()
    pc = make_client(bob, wallet, bc, db)

    ntx = mock.make_notification(alice, bob.payment_code)
    assert pc.process_received(ntx, height=900)
    saves = db.saves

    assert not pc.process_received(ntx, height=900)
    assert not pc.process_received(bitcoin.Transaction.from_hex(ntx.to_hex()), height=901)

    assert len(pc.list()) == 1
    assert len(pc.channel_for(alice.notification_address).incoming_addresses) == 1
    assert len(wallet.get_imported_keys()) == 1
    assert bc.rollbacks == [898]
    assert db.saves == saves


@pytest.mark.parametrize("n", [1, 4, 9])
def test_incoming_payments(alice, bob, n):
    wallet = mock.MockWallet()
    pc = make_client(bob, wallet)
    pc.process_received(mock.make_notification(alice, bob.payment_code))

    for i in range(n):
        assert pc.process_received(mock.make_payment(ALICE_TO_BOB_ADDRESSES[i], prev_index=i))

    model = pc.channel_for(alice.notification_address)
    assert model.current_incoming_index == n
    assert [a.address for a in model.incoming_addresses] == ALICE_TO_BOB_ADDRESSES[:n + 1]
    assert [a.seen for a in model.incoming_addresses] == [True] * n + [False]
    assert imported_addresses(wallet) == ALICE_TO_BOB_ADDRESSES[:n + 1]

    # A second payment to a seen address changes nothing
    assert not pc.process_received(mock.make_payment(ALICE_TO_BOB_ADDRESSES[0], amount=1))
    assert model.current_incoming_index == n


def test_payment_before_notification_is_ignored(alice, bob):
    pc = make_client(bob)
    assert not pc.process_received(mock.make_payment(ALICE_TO_BOB_ADDRESSES[0]))
    assert pc.list() == []


def test_notification_to_someone_else(alice, bob, carol):
    pc = make_client(bob)
    assert not pc.process_received(mock.make_notification(alice, carol.payment_code))
    assert pc.list() == []


def test_outbound_notification(alice, bob, carol):
    key = alice.child_key(17).key
    wallet = mock.MockWallet(keys=[key])
    db = mock.MemoryDatabase()
    pc = make_client(alice, wallet, db=db)

    change = mock.p2pkh_output(key.public_key.address(compressed=True), 546)
    ntx = mock.make_notification(alice, carol.payment_code, private_key=key, extra_outputs=[change])

    assert pc.process_sent(ntx)
    model = pc.channel_for(carol.notification_address)
    assert model.status == statemachine.ChannelStatus.SENT
    assert model.ntx_hash == ntx.hash
    assert model.payment_code is None

    assert not pc.process_sent(ntx)
    assert not pc.can_send_to(bob.payment_code)

    # The payment code gets attached by address
    assert pc.can_send_to(carol.payment_code)
    assert model.payment_code == carol.payment_code
    assert db.records[0]['paymentCode'] == str(carol.payment_code)
    assert db.records[0]['status'] == 'sent'
    assert db.records[0]['ntxHash'] == str(ntx.hash)

    # Survives a restart
    pc1 = make_client(alice, mock.MockWallet(keys=[key]), db=db)
    assert pc1.can_send_to(str(carol.payment_code))


def test_outbound_notification_through_process_received(alice, carol):
    key = alice.child_key(18).key
    pc = make_client(alice, mock.MockWallet(keys=[key]))

    ntx = mock.make_notification(alice, carol.payment_code, private_key=key)
    assert pc.process_received(ntx)
    assert pc.channel_for(carol.notification_address).is_notification_sent


def test_sent_transaction_that_is_not_ours(alice, carol):
    pc = make_client(alice, mock.MockWallet())
    assert not pc.process_sent(mock.make_notification(alice, carol.payment_code))
    assert pc.list() == []


def test_outgoing_payments(alice, bob):
    db = mock.MemoryDatabase()
    pc = make_client(alice, db=db)

    with pytest.raises(client.NotFoundError):
        pc.next_outgoing_address(bob.payment_code)

    key = alice.child_key(19).key
    prev = bitcoin.TransactionInput(mock.MOCK_UTXO, 0, bitcoin.Script())
    outputs = pc.make_notification_outputs(bob.payment_code, key, prev)
    assert len(outputs) == 2
    assert notification.output_address(outputs[0]) == bob.notification_address

    model = pc.mark_notification_sent(bob.payment_code, bitcoin.Hash(bytes(range(32))))
    assert model.is_notification_sent
    assert pc.can_send_to(bob.payment_code)

    for i in range(3):
        assert pc.next_outgoing_address(bob.payment_code) == ALICE_TO_BOB_ADDRESSES[i]
        assert pc.next_outgoing_address(bob.notification_address) == ALICE_TO_BOB_ADDRESSES[i]
        pc.record_outgoing_payment(bob.payment_code)

    assert pc.channel_for(bob.notification_address).current_outgoing_index == 3
    assert db.records[0]['currentOutgoingIndex'] == 3


@pytest.mark.parametrize("height, current, expected", [
    (None, 1000, []),
    (0, 1000, []),
    (1, 1000, []),
    (2, 1000, [0]),
    (1000, 1000, [998]),
    (1001, 1000, []),
    (1200, 1000, []),
])
def test_rescan_guard(alice, bob, height, current, expected):
    bc = mock.MockBlockchain(height=current)
    pc = make_client(bob, blockchain=bc)

    assert pc.process_received(mock.make_notification(alice, bob.payment_code), height=height)
    assert bc.rollbacks == expected
    assert alice.notification_address in pc.list()


def test_rescan_depth(alice, bob):
    bc = mock.MockBlockchain(height=1000)
    pc = make_client(bob, blockchain=bc, rescan_depth=6)
    pc.process_received(mock.make_notification(alice, bob.payment_code), height=700)
    assert bc.rollbacks == [694]


def test_rescan_failure_is_logged(alice, bob, caplog):
    bc = mock.MockBlockchain(fail=True)
    pc = make_client(bob, blockchain=bc)

    with caplog.at_level(logging.ERROR, logger='channels'):
        assert pc.process_received(mock.make_notification(alice, bob.payment_code), height=10)
    assert "rescanning" in caplog.text
    assert pc.channel_for(alice.notification_address) is not None


def test_outbound_notification_rescan(alice, carol):
    key = alice.child_key(20).key
    bc = mock.MockBlockchain(height=1000)
    pc = make_client(alice, mock.MockWallet(keys=[key]), blockchain=bc)

    ntx = mock.make_notification(alice, carol.payment_code, private_key=key)
    assert pc.process_sent(ntx, height=500)
    assert bc.rollbacks == [498]

    # Already recorded, nothing to rescan
    assert not pc.process_sent(ntx, height=500)
    assert not pc.process_received(ntx, height=500)
    assert bc.rollbacks == [498]


def test_outbound_notification_rescan_guard(alice, carol):
    key = alice.child_key(22).key
    bc = mock.MockBlockchain(height=100)
    pc = make_client(alice, mock.MockWallet(keys=[key]), blockchain=bc)

    assert pc.process_received(mock.make_notification(alice, carol.payment_code, private_key=key), height=150)
    assert bc.rollbacks == []
    assert pc.channel_for(carol.notification_address).is_notification_sent


def test_payments_do_not_rescan(alice, bob):
    bc = mock.MockBlockchain()
    pc = make_client(bob, blockchain=bc)
    pc.process_received(mock.make_notification(alice, bob.payment_code), height=100)
    pc.process_received(mock.make_payment(ALICE_TO_BOB_ADDRESSES[0]), height=100)
    assert bc.rollbacks == [98]


def test_bad_transactions_are_tolerated(alice, bob, carol):
    wallet = mock.MockWallet()
    pc = make_client(bob, wallet)

    # Pays the notification address, payload does not decode
    payload = bytes([1, 0, 0x07]) + bytes(77)
    junk = mock._sign(mock.FUNDING_KEY, [mock.p2pkh_output(bob.notification_address, 546),
                                         bitcoin.TransactionOutput(0, bitcoin.Script.build_null_data(payload))])
    assert not pc.process_received(junk)

    # Unparseable output script
    garbage = bitcoin.Transaction(bitcoin.Transaction.DEFAULT_TRANSACTION_VERSION,
                                  [bitcoin.TransactionInput(mock.MOCK_UTXO, 0, bitcoin.Script())],
                                  [bitcoin.TransactionOutput(1, bitcoin.Script(bytes.fromhex("4c05aa")))])
    assert not pc.process_received(garbage)
    assert not pc.process_sent(garbage)

    assert not pc.process_received(None)
    assert not pc.process_sent(None)

    assert pc.list() == []
    assert wallet.get_imported_keys() == []

    # Later transactions still go through
    assert pc.process_received(mock.make_notification(carol, bob.payment_code))
    assert pc.list() == [carol.notification_address]


def test_persistence_failure(alice, bob):
    db = mock.MemoryDatabase()
    db.fail_save = True
    pc = make_client(bob, db=db)

    assert pc.process_received(mock.make_notification(alice, bob.payment_code))
    assert pc.channel_for(alice.notification_address) is not None
    assert db.records == []

    with pytest.raises(PersistenceError):
        pc.save()

    db.fail_save = False
    pc.save()
    assert len(db.records) == 1


def test_caller_operations_report_persistence_failure(alice, bob, carol):
    key = alice.child_key(21).key
    wallet = mock.MockWallet(keys=[key])
    db = mock.MemoryDatabase()
    db.fail_save = True
    pc = make_client(alice, wallet, db=db)

    with pytest.raises(PersistenceError):
        pc.mark_notification_sent(bob.payment_code, bitcoin.Hash(bytes(range(32))))
    assert pc.channel_for(bob.notification_address).is_notification_sent

    with pytest.raises(PersistenceError):
        pc.record_outgoing_payment(bob.payment_code)
    assert pc.channel_for(bob.notification_address).current_outgoing_index == 1

    # Wallet-driven processing still tolerates the failure
    assert pc.process_sent(mock.make_notification(alice, carol.payment_code, private_key=key))
    with pytest.raises(PersistenceError):
        pc.can_send_to(carol.payment_code)
    assert pc.channel_for(carol.notification_address).payment_code == carol.payment_code
    assert db.records == []

    db.fail_save = False
    assert pc.can_send_to(carol.payment_code)
    pc.save()
    assert len(db.records) == 2


def test_send_notification_persistence_failure(alice, bob):
    wallet = mock.MockWallet()
    db = mock.MemoryDatabase()
    db.fail_save = True
    pc = make_client(alice, wallet, db=db)

    ntx = mock.make_notification(alice, bob.payment_code)
    with pytest.raises(PersistenceError):
        pc.send_notification(bob.payment_code, ntx)
    assert wallet.broadcast == [ntx]
    assert pc.can_send_to(bob.payment_code)


def test_restart_reimports_keys(alice, bob):
    db = mock.MemoryDatabase()
    pc = make_client(bob, db=db)
    pc.process_received(mock.make_notification(alice, bob.payment_code))
    for i in range(2):
        pc.process_received(mock.make_payment(ALICE_TO_BOB_ADDRESSES[i]))

    wallet = mock.MockWallet()
    pc1 = make_client(bob, wallet, db=db)
    assert imported_addresses(wallet) == ALICE_TO_BOB_ADDRESSES[:3]
    assert pc1.channel_for(alice.notification_address).current_incoming_index == 2

    # Payments keep flowing after the restart
    assert pc1.process_received(mock.make_payment(ALICE_TO_BOB_ADDRESSES[2]))
    assert imported_addresses(wallet)[-1] == ALICE_TO_BOB_ADDRESSES[3]


def test_import_channels(alice, bob, carol):
    wallet = mock.MockWallet()
    pc = make_client(bob, wallet)

    records = [
        # No notificationAddress, derived from the payment code
        {'paymentCode': str(alice.payment_code),
         'incomingAddresses': [{'address': ALICE_TO_BOB_ADDRESSES[0], 'index': 0, 'seen': False}]},
        # Malformed
        {'paymentCode': "PM8Tgarbage"},
        {'incomingAddresses': 5},
    ]
    assert pc.import_channels(records)

    assert pc.list() == [alice.notification_address]
    assert imported_addresses(wallet) == [ALICE_TO_BOB_ADDRESSES[0]]

    # An empty record never replaces a channel with incoming addresses
    assert not pc.import_channels([{'notificationAddress': alice.notification_address}])
    assert len(pc.channel_for(alice.notification_address).incoming_addresses) == 1

    assert pc.import_channels([{'paymentCode': str(carol.payment_code), 'status': 'sent'}])
    assert pc.can_send_to(carol.payment_code)

    exported = pc.export_channels()
    assert [r['notificationAddress'] for r in exported] == [alice.notification_address,
                                                             carol.notification_address]


def test_concurrent_processing(alice, bob, carol, dave):
    wallet = mock.MockWallet()
    db = mock.MemoryDatabase()
    pc = make_client(bob, wallet, db=db)

    senders = [alice, carol, dave]
    notifications = [mock.make_notification(s, bob.payment_code) for s in senders]
    errors = []

    def worker(txns):
        try:
            for txn in txns:
                pc.process_received(txn, height=50)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(notifications,)) for _ in range(4)]
    threads += [threading.Thread(target=worker, args=(list(reversed(notifications)),)) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(pc.list()) == sorted(s.notification_address for s in senders)
    assert len(wallet.get_imported_keys()) == 3
    for s in senders:
        model = pc.channel_for(s.notification_address)
        assert model.incoming_addresses[0].address == addresses.receive_address(bob, s.payment_code, 0)
    assert len(db.records) == 3

    payments = [mock.make_payment(addresses.receive_address(bob, s.payment_code, 0)) for s in senders]
    threads = [threading.Thread(target=worker, args=(payments,)) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(wallet.get_imported_keys()) == 6
    assert all(pc.channel_for(s.notification_address).current_incoming_index == 1 for s in senders)


def test_from_config(tmpdir, alice, bob):
    path = os.path.join(str(tmpdir), "channels.json")
    cfg = Config(os.path.join(str(tmpdir), "paycode.json"),
                 config=[('channels_path', path), ('rescan_depth', 5)])
    bc = mock.MockBlockchain(height=500)

    pc = client.ChannelClient.from_config(bob, mock.MockWallet(), bc, cfg)
    assert pc.process_received(mock.make_notification(alice, bob.payment_code), height=420)
    assert bc.rollbacks == [415]
    assert os.path.exists(path)

    restarted = client.ChannelClient.from_config(bob, mock.MockWallet(), bc, cfg)
    assert restarted.list() == [alice.notification_address]


def test_send_notification(alice, bob):
    wallet = mock.MockWallet()
    db = mock.MemoryDatabase()
    pc = make_client(alice, wallet, db=db)

    ntx = mock.make_notification(alice, bob.payment_code)
    wallet.fail_broadcast = True
    with pytest.raises(walletwrapper.WalletError):
        pc.send_notification(bob.payment_code, ntx)
    assert pc.list() == []

    wallet.fail_broadcast = False
    assert pc.send_notification(bob.payment_code, ntx) == str(ntx.hash)
    assert wallet.broadcast == [ntx]
    assert pc.can_send_to(bob.payment_code)
    assert db.records[0]['ntxHash'] == str(ntx.hash)
